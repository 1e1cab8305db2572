import pytest

from bindcache.config import CacheConfig, CacheSettings, load_settings
from bindcache.errors import ConfigError
from bindcache.providers import CallerProvider, ExpirationProvider, RequestQueryProvider
from bindcache.store import MemoryStore


def test_load_settings_defaults(tmp_path):
    path = tmp_path / "bindcache.yml"
    path.write_text("identity_fields: [id, slug]", encoding="utf-8")

    settings = load_settings(path)

    assert isinstance(settings, CacheSettings)
    assert settings.identity_fields == ("id", "slug")
    assert settings.default_expires_in == 3600
    assert settings.key_providers == ("caller", "request_path", "request_query")


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "bindcache.yml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path) == CacheSettings()


def test_env_overrides(monkeypatch, tmp_path):
    source = tmp_path / "bindcache.yml"
    source.write_text("default_expires_in: 60", encoding="utf-8")

    monkeypatch.setenv("BINDCACHE_IDENTITY_FIELDS", "uuid, id")
    monkeypatch.setenv("BINDCACHE_DEFAULT_EXPIRES_IN", "120")
    monkeypatch.setenv("BINDCACHE_KEY_PROVIDERS", "caller")

    settings = load_settings(source)

    assert settings.identity_fields == ("uuid", "id")
    assert settings.default_expires_in == 120
    assert settings.key_providers == ("caller",)


def test_env_can_disable_expiration(monkeypatch, tmp_path):
    source = tmp_path / "bindcache.yml"
    source.write_text("default_expires_in: 60", encoding="utf-8")
    monkeypatch.setenv("BINDCACHE_DEFAULT_EXPIRES_IN", "off")

    assert load_settings(source).default_expires_in is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yml")


@pytest.mark.parametrize(
    "content",
    [
        "identity_fields: []",
        "identity_fields: id",
        "default_expires_in: -5",
        "key_providers: [caller, geolocation]",
        "- just\n- a list",
    ],
)
def test_invalid_settings_rejected(tmp_path, content):
    path = tmp_path / "bindcache.yml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(path)


def test_config_from_settings():
    store = MemoryStore()
    settings = CacheSettings(
        identity_fields=("id",),
        default_expires_in=30,
        key_providers=("caller", "request_query"),
    )

    config = CacheConfig.from_settings(settings, store=store)

    assert config.store is store
    assert [type(p) for p in config.key_providers] == [CallerProvider, RequestQueryProvider]
    assert config.fingerprint_fields == ("caller", "request_params")
    assert len(config.option_providers) == 1
    assert isinstance(config.option_providers[0], ExpirationProvider)
    assert config.option_providers[0].expires_in == 30


def test_config_without_expiration():
    config = CacheConfig.from_settings(CacheSettings(default_expires_in=None))

    assert config.option_providers == ()
    assert isinstance(config.store, MemoryStore)
