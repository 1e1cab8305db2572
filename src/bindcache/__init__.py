"""
bindcache: cache keys bound to object identity, with generational invalidation.
"""

from .binding import BindingEntry, normalize
from .config import CacheConfig, CacheSettings, load_settings
from .errors import (
    BindingError,
    ConfigError,
    MalformedBindingError,
    MissingIdentityFieldError,
    NilBindingError,
)
from .identity import ObjectIdentityCache
from .metadata import CacheMetadata
from .providers import CallerProvider, ExpirationProvider, RequestPathProvider, RequestQueryProvider
from .store import BackingStore, MemoryStore

__all__ = [
    'BackingStore',
    'BindingEntry',
    'BindingError',
    'CacheConfig',
    'CacheMetadata',
    'CacheSettings',
    'CallerProvider',
    'ConfigError',
    'ExpirationProvider',
    'MalformedBindingError',
    'MemoryStore',
    'MissingIdentityFieldError',
    'NilBindingError',
    'ObjectIdentityCache',
    'RequestPathProvider',
    'RequestQueryProvider',
    'load_settings',
    'normalize',
]
