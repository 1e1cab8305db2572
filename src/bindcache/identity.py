"""
Object identity cache.

Binds cached results to the domain objects they were computed from:

    identity = ObjectIdentityCache(config)
    widget = identity.cache([Widget, 42], lambda: render_widget(42))
    ...
    identity.invalidate(Widget, 42)   # next cache() call recomputes

Nothing is deleted on invalidation. The generation tokens behind the key
change, so the next lookup builds a new key and the old entry is left for
the store's own expiry to reclaim.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .binding import BindingEntry, entry_from_mapping, normalize, selector_for
from .config import CacheConfig
from .errors import MalformedBindingError
from .index import IndexRegistry
from .keys import META_SUFFIX, KeySynthesizer, fingerprint
from .metadata import CacheMetadata, MetadataStore

logger = logging.getLogger(__name__)


class ObjectIdentityCache:
    """Fetch-or-compute keyed by object identity, with generational invalidation."""

    def __init__(self, config: Optional[CacheConfig] = None) -> None:
        self.config = config or CacheConfig()
        self.store = self.config.store
        self.registry = IndexRegistry(
            self.store,
            identity_fields=self.config.identity_fields,
            random_string=self.config.random_string,
        )
        self.keys = KeySynthesizer(self.registry)
        self.metadata = MetadataStore(self.store, random_string=self.config.random_string)

        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "evictions": 0,
            "rotations": 0,
            "start_time": time.time(),
        }

    # ── Keys ─────────────────────────────────────────────────────────

    def prepare(
        self,
        bind: Any,
        context: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run the context providers, then normalize the binding."""
        context = context or {}
        binding: Dict[str, Any] = {"bind": bind, "params": dict(params or {})}
        for provider in self.config.key_providers:
            binding = provider.apply(binding, context)
        binding["bind"] = normalize(binding["bind"], self.config.identity_fields)
        return binding

    def _key_for(self, binding: Mapping[str, Any]) -> str:
        return self.keys.compute_key(
            binding["bind"],
            fingerprint(binding, self.config.fingerprint_fields),
            binding["params"],
        )

    def key(self, bind: Any, context: Optional[Mapping[str, Any]] = None,
            params: Optional[Mapping[str, Any]] = None) -> str:
        return self._key_for(self.prepare(bind, context, params))

    def meta_key(self, bind: Any, context: Optional[Mapping[str, Any]] = None,
                 params: Optional[Mapping[str, Any]] = None) -> str:
        return self.key(bind, context, params) + META_SUFFIX

    def cache_options(self, context: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        options = dict((context or {}).get("cache_options") or {})
        for provider in self.config.option_providers:
            options = provider.apply(options)
        return options

    # ── Fetch or compute ─────────────────────────────────────────────

    def cache(
        self,
        bind: Any,
        compute: Callable[[], Any],
        context: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Return the cached value for this binding, computing it on a miss.

        Args:
            bind: what the result depends on (see bindcache.binding)
            compute: zero-argument callable producing the value
            context: request context read by the key providers; may carry
                "cache_options" for the store
            params: extra values that distinguish otherwise identical requests

        Falsy results are returned but never kept: the key is deleted so the
        next call computes again.

        The delete happens after the store's fetch returns, so a caller blocked
        on the same key inside an exclusive fetch (MemoryStore) may still get
        that falsy value back as a hit. Later calls compute again.
        """
        key = self._key_for(self.prepare(bind, context, params))
        options = self.cache_options(context)
        computed = False

        def run() -> Any:
            nonlocal computed
            computed = True
            value = compute()
            if value:
                self.metadata.write(key + META_SUFFIX, value)
                self.stats["writes"] += 1
            return value

        result = self.store.fetch(key, options, run)

        if computed:
            self.stats["misses"] += 1
            logger.debug(f"Cache miss for {key}")
        else:
            self.stats["hits"] += 1
            logger.debug(f"Cache hit for {key}")

        if not result:
            self.store.delete(key)
            self.stats["evictions"] += 1
            logger.debug(f"Not caching falsy result for {key}")

        return result

    def cached(self, bind: Any, params: Any = None, context: Any = None):
        """
        Decorator form of cache().

        bind, params and context may be given as values or as callables taking
        the decorated function's arguments. Without params, the call arguments
        themselves are part of the key.
        """

        def resolve(value: Any, args, kwargs) -> Any:
            if callable(value) and not isinstance(value, type):
                return value(*args, **kwargs)
            return value

        def decorator(func):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                call_params = resolve(params, args, kwargs)
                if call_params is None:
                    call_params = {"function": func.__qualname__, "args": list(args), "kwargs": kwargs}
                return self.cache(
                    resolve(bind, args, kwargs),
                    lambda: func(*args, **kwargs),
                    context=resolve(context, args, kwargs),
                    params=call_params,
                )

            return wrapper

        return decorator

    # ── Metadata ─────────────────────────────────────────────────────

    def cache_metadata(self, bind: Any, context: Optional[Mapping[str, Any]] = None,
                       params: Optional[Mapping[str, Any]] = None) -> CacheMetadata:
        """Etag and last-modified for the entry cache() would use."""
        return self.metadata.read(self.meta_key(bind, context, params))

    # ── Invalidation ─────────────────────────────────────────────────

    def _index_entry(self, target: Any, selector: Any = None) -> BindingEntry:
        if isinstance(target, Mapping):
            if selector is not None:
                raise MalformedBindingError(
                    f"invalid args ({target!r}, {selector!r}), pass a mapping or (klass, identifier)"
                )
            return entry_from_mapping(target, self.config.identity_fields)
        if isinstance(target, BindingEntry) and selector is None:
            return target
        if isinstance(target, type):
            return BindingEntry(target, selector_for(selector, self.config.identity_fields))
        raise MalformedBindingError(
            f"invalid args ({target!r}, {selector!r}), must be (klass, identifier) or a mapping"
        )

    def invalidate(self, target: Any, selector: Any = None) -> List[str]:
        """
        Invalidate everything cached against a class or a single object.

        invalidate(Widget, 42) rotates INDEX:Widget/id=42 and also the
        class-wide INDEX:Widget/*, since listings of "any Widget" include the
        changed object. invalidate(Widget) rotates only INDEX:Widget/*.

        Returns the rotated index strings.
        """
        entry = self._index_entry(target, selector)
        indexes = [self.registry.index_string_for(entry.klass, entry.selector)]
        if entry.selector is not None:
            indexes.append(self.registry.index_string_for(entry.klass))

        for index in indexes:
            self.registry.rotate(index)
        self.stats["rotations"] += len(indexes)

        logger.info(f"Invalidated {', '.join(indexes)}")
        return indexes

    # ── Stats ────────────────────────────────────────────────────────

    def get_stats(self) -> Dict[str, Any]:
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "writes": self.stats["writes"],
            "evictions": self.stats["evictions"],
            "rotations": self.stats["rotations"],
            "uptime_seconds": int(time.time() - self.stats["start_time"]),
        }
