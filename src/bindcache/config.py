"""Configuration for the object identity cache."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from .binding import DEFAULT_IDENTITY_FIELDS
from .errors import ConfigError
from .index import random_string
from .providers import KEY_PROVIDERS, ContextProvider, ExpirationProvider, OptionProvider
from .store import BackingStore, MemoryStore

SETTINGS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "identity_fields": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
        },
        "default_expires_in": {"type": ["integer", "null"], "minimum": 1},
        "key_providers": {
            "type": "array",
            "items": {"type": "string", "enum": sorted(KEY_PROVIDERS)},
        },
    },
}

DEFAULT_EXPIRES_IN = 3600
DEFAULT_KEY_PROVIDERS = ("caller", "request_path", "request_query")

_validator = Draft7Validator(SETTINGS_SCHEMA)


def validate_settings(data: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ConfigError(f"cache settings validation failed: {messages}")


@dataclass(frozen=True)
class CacheSettings:
    identity_fields: Tuple[str, ...] = DEFAULT_IDENTITY_FIELDS
    default_expires_in: Optional[int] = DEFAULT_EXPIRES_IN
    key_providers: Tuple[str, ...] = DEFAULT_KEY_PROVIDERS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheSettings":
        validate_settings(data)
        defaults = cls()
        return cls(
            identity_fields=tuple(data.get("identity_fields", defaults.identity_fields)),
            default_expires_in=data.get("default_expires_in", defaults.default_expires_in),
            key_providers=tuple(data.get("key_providers", defaults.key_providers)),
        )


@dataclass(frozen=True)
class CacheConfig:
    """Everything an ObjectIdentityCache needs, passed in explicitly."""

    store: BackingStore = field(default_factory=MemoryStore)
    identity_fields: Tuple[str, ...] = DEFAULT_IDENTITY_FIELDS
    key_providers: Tuple[ContextProvider, ...] = field(
        default_factory=lambda: tuple(KEY_PROVIDERS[name]() for name in DEFAULT_KEY_PROVIDERS)
    )
    option_providers: Tuple[OptionProvider, ...] = field(
        default_factory=lambda: (ExpirationProvider(DEFAULT_EXPIRES_IN),)
    )
    random_string: Callable[[], str] = random_string

    @classmethod
    def from_settings(
        cls,
        settings: CacheSettings,
        store: Optional[BackingStore] = None,
        random_string: Callable[[], str] = random_string,
    ) -> "CacheConfig":
        option_providers: Tuple[OptionProvider, ...] = ()
        if settings.default_expires_in is not None:
            option_providers = (ExpirationProvider(settings.default_expires_in),)
        return cls(
            store=store if store is not None else MemoryStore(),
            identity_fields=settings.identity_fields,
            key_providers=tuple(KEY_PROVIDERS[name]() for name in settings.key_providers),
            option_providers=option_providers,
            random_string=random_string,
        )

    @property
    def fingerprint_fields(self) -> Tuple[str, ...]:
        return tuple(provider.field for provider in self.key_providers)


ENV_MAP = {
    "identity_fields": "BINDCACHE_IDENTITY_FIELDS",
    "default_expires_in": "BINDCACHE_DEFAULT_EXPIRES_IN",
    "key_providers": "BINDCACHE_KEY_PROVIDERS",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        raw = os.environ[env_name].strip()
        value: Any
        if key == "default_expires_in":
            value = None if raw.lower() in {"", "none", "off"} else int(raw)
        else:
            value = [part.strip() for part in raw.split(",") if part.strip()]
        merged[key] = value

    return merged


def load_settings(config_path: str | Path = "config/bindcache.yml") -> CacheSettings:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    if not isinstance(data, dict):
        raise ConfigError(f"cache settings in {path} must be a mapping")
    data = merge_env_overrides(data)
    return CacheSettings.from_dict(data)
