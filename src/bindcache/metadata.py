"""Etag and last-modified tracking for cached entries."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from .index import random_string
from .store import BackingStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def etag_for(content: Any) -> str:
    payload = json.dumps(content, sort_keys=True, default=str)
    return hashlib.md5(payload.encode()).hexdigest()


@dataclass(frozen=True)
class CacheMetadata:
    etag: str
    last_modified: datetime


class MetadataStore:
    """
    Reads and writes CacheMetadata under meta keys.

    A missing entry (never computed, or orphaned by a rotation) reads back as
    a fresh random etag stamped now. That default is not persisted.
    """

    def __init__(
        self,
        store: BackingStore,
        random_string: Callable[[], str] = random_string,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.random_string = random_string
        self.clock = clock

    def read(self, meta_key: str) -> CacheMetadata:
        metadata = self.store.get(meta_key)
        if metadata is None:
            return CacheMetadata(etag=etag_for(self.random_string()), last_modified=self.clock())
        return metadata

    def write(self, meta_key: str, content: Any) -> CacheMetadata:
        metadata = CacheMetadata(etag=etag_for(content), last_modified=self.clock())
        self.store.write(meta_key, metadata)
        return metadata
