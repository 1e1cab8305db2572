"""
Pluggable request-context and cache-option providers.

Context providers run before normalization. Each one copies one value out of
the request context into the prepared binding under its `field`; the key
synthesizer folds those fields into the key hash in provider order.

Option providers adjust the options handed to the store's fetch().
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Protocol


class ContextProvider(Protocol):
    field: str

    def apply(self, binding: Dict[str, Any], context: Mapping[str, Any]) -> Dict[str, Any]:
        ...


class OptionProvider(Protocol):
    def apply(self, options: Dict[str, Any]) -> Dict[str, Any]:
        ...


class ContextFieldProvider:
    """Copy context[source] into binding[field] when present."""

    field = ""
    source = ""

    def value(self, context: Mapping[str, Any]) -> Any:
        return context.get(self.source)

    def apply(self, binding: Dict[str, Any], context: Mapping[str, Any]) -> Dict[str, Any]:
        value = self.value(context)
        if value is None:
            return binding
        return {**binding, self.field: value}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(field={self.field!r})"


class CallerProvider(ContextFieldProvider):
    """Who is asking: a user id, an API client, a code location."""

    field = "caller"
    source = "caller"


class RequestPathProvider(ContextFieldProvider):
    field = "request_path"
    source = "request_path"


class RequestQueryProvider(ContextFieldProvider):
    field = "request_params"
    source = "query"

    def value(self, context: Mapping[str, Any]) -> Optional[str]:
        query = context.get(self.source)
        if not query:
            return None
        return json.dumps(dict(query), sort_keys=True, default=str)


class ExpirationProvider:
    """Inject a default expires_in unless the caller already set one."""

    def __init__(self, expires_in: int = 3600) -> None:
        self.expires_in = expires_in

    def apply(self, options: Dict[str, Any]) -> Dict[str, Any]:
        if options.get("expires_in") is not None:
            return options
        return {**options, "expires_in": self.expires_in}

    def __repr__(self) -> str:
        return f"ExpirationProvider(expires_in={self.expires_in})"


KEY_PROVIDERS = {
    "caller": CallerProvider,
    "request_path": RequestPathProvider,
    "request_query": RequestQueryProvider,
}
