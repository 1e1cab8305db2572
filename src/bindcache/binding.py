"""
Binding normalization.

Callers describe what a cached result depends on in several shapes:

    Widget                                  any Widget
    [Widget]                                any Widget
    [Widget, 42]                            the Widget whose id is 42
    [Widget, {"slug": "x"}]                 the Widget selected by a mapping
    {"klass": Widget, "object": {"id": 42}}
    [[Widget], [User, {"id": 7}]]           any Widget, or user 7

normalize() turns all of them into a flat list of BindingEntry values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import MalformedBindingError

DEFAULT_IDENTITY_FIELDS = ("id",)


@dataclass(frozen=True)
class BindingEntry:
    klass: type
    selector: Optional[Dict[str, Any]] = None


def class_tag(klass: type) -> str:
    return klass.__qualname__


def selector_for(value: Any, identity_fields: Sequence[str] = DEFAULT_IDENTITY_FIELDS) -> Optional[Dict[str, Any]]:
    """Expand a scalar identity value into a selector mapping."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return dict(value)
    return {identity_fields[0]: value}


def normalize(spec: Any, identity_fields: Sequence[str] = DEFAULT_IDENTITY_FIELDS) -> Optional[List[BindingEntry]]:
    """Return the canonical form of a binding spec, or None for no binding."""
    if spec is None:
        return None
    if isinstance(spec, BindingEntry):
        return [spec]
    if isinstance(spec, type):
        return [BindingEntry(spec)]
    if isinstance(spec, Mapping):
        return [entry_from_mapping(spec, identity_fields)]
    if isinstance(spec, (list, tuple)):
        return _normalize_sequence(spec, identity_fields)
    raise MalformedBindingError(f"invalid binding {spec!r}, expected a class, mapping or list")


def entry_from_mapping(spec: Mapping, identity_fields: Sequence[str]) -> BindingEntry:
    klass = spec.get("klass")
    if not isinstance(klass, type):
        raise MalformedBindingError(f"binding mapping {dict(spec)!r} has no class under 'klass'")
    return BindingEntry(klass, selector_for(spec.get("object"), identity_fields))


def _normalize_sequence(spec: Sequence, identity_fields: Sequence[str]) -> List[BindingEntry]:
    if not spec:
        raise MalformedBindingError("empty binding list")

    head = spec[0]
    if isinstance(head, (list, tuple, Mapping, BindingEntry)):
        entries: List[BindingEntry] = []
        for element in spec:
            normalized = normalize(element, identity_fields)
            if normalized is None:
                raise MalformedBindingError(f"invalid element None in binding {list(spec)!r}")
            entries.extend(normalized)
        return entries

    if isinstance(head, type):
        if len(spec) > 2:
            raise MalformedBindingError(
                f"shorthand binding {list(spec)!r} takes a class and at most one selector"
            )
        selector = selector_for(spec[1], identity_fields) if len(spec) == 2 else None
        return [BindingEntry(head, selector)]

    raise MalformedBindingError(f"invalid argument type {type(head).__name__} in binding ({head!r})")
