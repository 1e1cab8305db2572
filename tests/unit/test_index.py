#!/usr/bin/env python3
"""
Unit tests for the generation token registry
"""

import itertools
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from bindcache.errors import MissingIdentityFieldError
from bindcache.index import IndexRegistry
from bindcache.store import MemoryStore


class Widget:
    pass


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def registry(store):
    seq = itertools.count()
    return IndexRegistry(store, identity_fields=("id", "slug"), random_string=lambda: f"rand-{next(seq)}")


class TestIndexStrings:

    def test_wildcard(self, registry):
        assert registry.index_string_for(Widget) == "INDEX:Widget/*"

    def test_object(self, registry):
        assert registry.index_string_for(Widget, {"id": 5}) == "INDEX:Widget/id=5"

    def test_field_order_in_selector_does_not_matter(self, registry):
        a = registry.index_string_for(Widget, {"id": 5, "slug": "five"})
        b = registry.index_string_for(Widget, {"slug": "five", "id": 5})
        assert a == b == "INDEX:Widget/id=5"

    def test_later_identity_field(self, registry):
        assert registry.index_string_for(Widget, {"slug": "x"}) == "INDEX:Widget/slug=x"

    def test_none_value_is_skipped(self, registry):
        assert registry.index_string_for(Widget, {"id": None, "slug": "x"}) == "INDEX:Widget/slug=x"

    def test_selector_without_identity_field_fails(self, registry):
        with pytest.raises(MissingIdentityFieldError, match="id, slug"):
            registry.index_string_for(Widget, {"name": "x"})

    def test_empty_selector_fails(self, registry):
        with pytest.raises(MissingIdentityFieldError):
            registry.index_string_for(Widget, {})


class TestTokens:

    def test_token_created_lazily_and_stored(self, registry, store):
        assert "INDEX:Widget/id=1" not in store

        token = registry.get_or_create_token("INDEX:Widget/id=1")

        assert store.get("INDEX:Widget/id=1") == token
        assert len(token) == 32

    def test_token_is_stable(self, registry):
        first = registry.token_for(Widget, {"id": 1})
        second = registry.token_for(Widget, {"id": 1})
        assert first == second

    def test_tokens_differ_per_index(self, registry):
        assert registry.token_for(Widget) != registry.token_for(Widget, {"id": 1})

    def test_rotate_replaces_token(self, registry, store):
        before = registry.token_for(Widget)

        rotated = registry.rotate("INDEX:Widget/*")

        assert rotated != before
        assert registry.token_for(Widget) == rotated
        assert store.get("INDEX:Widget/*") == rotated

    def test_rotate_missing_index_creates_it(self, registry, store):
        token = registry.rotate("INDEX:Widget/id=9")
        assert store.get("INDEX:Widget/id=9") == token

    def test_rotate_leaves_other_indexes(self, registry):
        other = registry.token_for(Widget, {"id": 2})
        registry.rotate("INDEX:Widget/id=1")
        assert registry.token_for(Widget, {"id": 2}) == other

    def test_concurrent_first_access_agrees(self, store):
        registry = IndexRegistry(store)

        with ThreadPoolExecutor(max_workers=8) as pool:
            tokens = list(pool.map(lambda _: registry.get_or_create_token("INDEX:Widget/*"), range(32)))

        assert len(set(tokens)) == 1
