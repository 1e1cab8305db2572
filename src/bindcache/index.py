"""
Generation token registry.

Every (class, selector) pair maps to an index string, and every index string
holds an opaque token in the backing store. Cache keys are built from these
tokens, so writing a new token (rotation) orphans every key derived from the
old one without touching the keys themselves.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Sequence

from .binding import DEFAULT_IDENTITY_FIELDS, class_tag
from .errors import MissingIdentityFieldError
from .store import BackingStore

logger = logging.getLogger(__name__)

INDEX_PREFIX = "INDEX"


def random_string() -> str:
    return str(uuid.uuid4())


class IndexRegistry:
    def __init__(
        self,
        store: BackingStore,
        identity_fields: Sequence[str] = DEFAULT_IDENTITY_FIELDS,
        random_string: Callable[[], str] = random_string,
    ) -> None:
        self.store = store
        self.identity_fields = tuple(identity_fields)
        self.random_string = random_string

    def index_string_for(self, klass: type, selector: Optional[Dict[str, Any]] = None) -> str:
        """
        Build the index string for a class or a single object.

        INDEX:Widget/id=42 when the selector has an identity field,
        INDEX:Widget/* when there is no selector at all.
        """
        tag = class_tag(klass)
        if selector is None:
            return f"{INDEX_PREFIX}:{tag}/*"

        for field in self.identity_fields:
            value = selector.get(field)
            if value is not None:
                return f"{INDEX_PREFIX}:{tag}/{field}={value}"

        raise MissingIdentityFieldError(
            f"object selector {selector!r} for {tag} can only be keyed by "
            f"{', '.join(self.identity_fields)}"
        )

    def new_token(self, index: str) -> str:
        return hashlib.md5(f"{index}:{self.random_string()}".encode()).hexdigest()

    def get_or_create_token(self, index: str) -> str:
        def create() -> str:
            token = self.new_token(index)
            logger.debug(f"Created generation token for {index}: {token}")
            return token

        return self.store.fetch(index, {}, create)

    def token_for(self, klass: type, selector: Optional[Dict[str, Any]] = None) -> str:
        return self.get_or_create_token(self.index_string_for(klass, selector))

    def rotate(self, index: str) -> str:
        """Replace the token for an index, existing or not."""
        token = self.new_token(index)
        self.store.write(index, token, {})
        logger.debug(f"Rotated generation token for {index}: {token}")
        return token
