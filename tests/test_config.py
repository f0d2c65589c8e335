"""
Тесты загрузки конфигурации pcache.yaml.
"""

import pytest

from pcache.cache import FileStore, MemoryStore
from pcache.config import (
    DEFAULT_GLOBAL_KEY,
    ConfigError,
    PCConfig,
    StoreBackend,
    StoreErrorPolicy,
    create_store,
    load_config,
)

from tests.infrastructure import write_config


class TestLoadConfig:

    def test_defaults_without_file(self, tmp_path):
        cfg = load_config(tmp_path)
        assert cfg.cache.enabled is True
        assert cfg.cache.backend is StoreBackend.MEMORY
        assert cfg.cache.default_ttl == 600
        assert cfg.cache.on_store_error is StoreErrorPolicy.DEGRADE
        assert cfg.cache.key_hash == "sha1"
        assert cfg.global_key == DEFAULT_GLOBAL_KEY
        assert cfg.globals == {}

    def test_full_file(self, tmp_path):
        write_config(tmp_path, """
            cache:
              enabled: false
              backend: fs
              dir: .cache-dir
              default_ttl: 30
              on_store_error: raise
              key_hash: sha256
            global_key: "$CurrentReadingMode"
            globals:
              CurrentReadingMode: Stage.Live
              SiteName: Demo
        """)
        cfg = load_config(tmp_path)
        assert cfg.cache.enabled is False
        assert cfg.cache.backend is StoreBackend.FS
        assert cfg.cache.dir == ".cache-dir"
        assert cfg.cache.default_ttl == 30
        assert cfg.cache.on_store_error is StoreErrorPolicy.RAISE
        assert cfg.cache.key_hash == "sha256"
        assert cfg.global_key == "$CurrentReadingMode"
        assert cfg.globals == {"CurrentReadingMode": "Stage.Live", "SiteName": "Demo"}

    def test_empty_key_hash_means_default(self, tmp_path):
        write_config(tmp_path, "cache:\n  key_hash:\n")
        assert load_config(tmp_path).cache.key_hash == "sha1"

    def test_key_hash_is_normalized(self, tmp_path):
        write_config(tmp_path, "cache:\n  key_hash: ' SHA256 '\n")
        assert load_config(tmp_path).cache.key_hash == "sha256"

    def test_roundtrip_to_dict(self, tmp_path):
        write_config(tmp_path, "cache:\n  backend: fs\n")
        cfg = load_config(tmp_path)
        assert PCConfig.from_dict(cfg.to_dict()) == cfg

    @pytest.mark.parametrize("value, expected", [
        ("0", False),
        ("off", False),
        ("no", False),
        ("1", True),
        ("yes", True),
    ])
    def test_env_override(self, tmp_path, monkeypatch, value, expected):
        """PC_CACHE перекрывает cache.enabled из файла"""
        write_config(tmp_path, "cache:\n  enabled: true\n" if not expected else "cache:\n  enabled: false\n")
        monkeypatch.setenv("PC_CACHE", value)
        assert load_config(tmp_path).cache.enabled is expected

    @pytest.mark.parametrize("text, field", [
        ("- a\n- b\n", "YAML must be a mapping"),
        ("cache: [1]\n", "cache: expected a mapping"),
        ("cache:\n  backend: redis\n", "cache.backend"),
        ("cache:\n  on_store_error: ignore\n", "cache.on_store_error"),
        ("cache:\n  default_ttl: -1\n", "cache.default_ttl"),
        ("cache:\n  default_ttl: soon\n", "cache.default_ttl"),
        ("globals: [1]\n", "globals"),
        ("global_key: [1]\n", "global_key"),
        ("cache:\n  key_hash: rot13\n", "cache.key_hash"),
        ("cache:\n  key_hash: shake_128\n", "cache.key_hash"),
        ("cache: {backend: fs\n", "Invalid YAML"),
    ])
    def test_invalid_values(self, tmp_path, text, field):
        (tmp_path / "pcache.yaml").write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            load_config(tmp_path)
        assert field in str(exc.value)

    def test_explicit_path(self, tmp_path):
        other = tmp_path / "conf" / "custom.yaml"
        other.parent.mkdir()
        other.write_text("cache:\n  default_ttl: 5\n", encoding="utf-8")
        assert load_config(tmp_path, path=other).cache.default_ttl == 5


class TestCreateStore:

    def test_memory_backend(self, tmp_path):
        assert isinstance(create_store(PCConfig(), tmp_path), MemoryStore)

    def test_fs_backend_uses_configured_dir(self, tmp_path):
        write_config(tmp_path, "cache:\n  backend: fs\n  dir: .x\n")
        store = create_store(load_config(tmp_path), tmp_path)
        assert isinstance(store, FileStore)
        assert store.dir == tmp_path / ".x" / "partials"
