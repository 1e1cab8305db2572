"""
Cache key synthesis.

Key layout:
    <token>,<token>,...:<md5(fingerprint + params)>

One token per canonical binding entry, in binding order. Rotating any of
those tokens yields a different key for the same request.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .binding import BindingEntry
from .errors import NilBindingError
from .index import IndexRegistry

logger = logging.getLogger(__name__)

META_SUFFIX = ":meta"


def serialize_params(params: Optional[Mapping[str, Any]]) -> str:
    """Stable JSON for request params, dropping keys whose value is None."""
    present = {k: v for k, v in (params or {}).items() if v is not None}
    return json.dumps(present, sort_keys=True, default=str, separators=(",", ":"))


def fingerprint(binding: Mapping[str, Any], fields: Iterable[str]) -> str:
    """Join field=value for the provider fields present in a prepared binding, in provider order."""
    values = [f"{f}={binding[f]}" for f in fields if binding.get(f) is not None]
    return "\n".join(values)


class KeySynthesizer:
    def __init__(self, registry: IndexRegistry) -> None:
        self.registry = registry

    def tokens(self, canonical: List[BindingEntry]) -> List[str]:
        return [self.registry.token_for(entry.klass, entry.selector) for entry in canonical]

    def compute_key(
        self,
        canonical: Optional[List[BindingEntry]],
        context_fingerprint: str = "",
        params: Optional[Dict[str, Any]] = None,
    ) -> str:
        if canonical is None:
            raise NilBindingError("you cannot key a nil binding")

        prefix = ",".join(self.tokens(canonical))
        digest = hashlib.md5(
            (context_fingerprint + serialize_params(params)).encode()
        ).hexdigest()
        key = f"{prefix}:{digest}"

        logger.debug(f"Generated key: {key} (entries={len(canonical)})")
        return key

    def meta_key(
        self,
        canonical: Optional[List[BindingEntry]],
        context_fingerprint: str = "",
        params: Optional[Dict[str, Any]] = None,
    ) -> str:
        return self.compute_key(canonical, context_fingerprint, params) + META_SUFFIX
