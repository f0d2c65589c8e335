"""
Тесты движка: кэш компиляции, рендер, сброс.
"""

import json

import pytest

from pcache.config import PCConfig
from pcache.engine import TemplateEngine
from pcache.errors import StructuralError

from tests.infrastructure import CountingStore, FailingStore, write_template


class TestTemplateEngine:

    def test_compile_is_cached(self, engine):
        a = engine.compile("<% cached $A %>X<% end_cached %>", "a.ss")
        b = engine.compile("<% cached $A %>X<% end_cached %>", "a.ss")
        assert a is b
        assert engine.compiled_count() == 1

    def test_anonymous_templates_do_not_evict_each_other(self, engine):
        """Безымянные шаблоны кэшируются по хешу исходника"""
        a = engine.compile("<% cached $A %>X<% end_cached %>")
        b = engine.compile("<% cached $B %>Y<% end_cached %>")
        assert engine.compile("<% cached $A %>X<% end_cached %>") is a
        assert engine.compile("<% cached $B %>Y<% end_cached %>") is b
        assert engine.compiled_count() == 2

    def test_changed_source_recompiles(self, engine):
        """Измененный исходник перекомпилируется, старая версия не меняется"""
        old = engine.compile("<% cached %>X<% end_cached %>", "a.ss")
        new = engine.compile("<% cached %>Y<% end_cached %>", "a.ss")
        assert new is not old
        assert old.regions[0].block_hash != new.regions[0].block_hash
        assert engine.compiled_count() == 1

    def test_structural_error_at_compile(self, engine, store):
        with pytest.raises(StructuralError):
            engine.render("<% loop $Items %><% cached $X %>Y<% end_cached %><% end_loop %>", {"Items": [1]})
        assert store.calls == 0

    def test_render_uses_store_and_stats(self, engine, store):
        text = "<% cached $A %>X<% end_cached %>"
        assert engine.render(text, {"A": 1}) == "X"
        assert engine.last_stats.misses == 1
        assert engine.render(text, {"A": 1}) == "X"
        assert engine.last_stats.hits == 1
        assert store.set_calls[0][2] == 600

    def test_template_change_invalidates_entries(self, engine, store):
        """Изменение текста блока меняет хеш блока и ключ"""
        engine.render("<% cached %>v1<% end_cached %>", name="p.ss")
        assert engine.render("<% cached %>v2<% end_cached %>", name="p.ss") == "v2"
        assert len(set(store.keys())) == 2

    def test_globals_merge_config_and_call(self, store, tmp_path):
        cfg = PCConfig.from_dict({"globals": {"CurrentReadingMode": "Stage.Live", "Site": "S"}})
        engine = TemplateEngine(cfg, store, root=tmp_path)

        out = engine.render("$Site/$CurrentReadingMode/$CurrentUser.ID", globals={"CurrentUser": {"ID": 3}})
        assert out == "S/Stage.Live/3"

        out = engine.render("$CurrentReadingMode", globals={"CurrentReadingMode": "Stage.Stage"})
        assert out == "Stage.Stage"

    def test_reading_mode_in_global_key(self, engine, store):
        text = "<% cached %>X<% end_cached %>"
        engine.render(text, globals={"CurrentReadingMode": "Stage.Live"})
        engine.render(text, globals={"CurrentReadingMode": "Stage.Stage"})
        engine.render(text, globals={"CurrentReadingMode": "Stage.Live"})
        assert len(set(store.keys())) == 2

    def test_custom_global_key(self, store, tmp_path):
        cfg = PCConfig.from_dict({"global_key": "static"})
        engine = TemplateEngine(cfg, store, root=tmp_path)
        engine.render("<% cached %>X<% end_cached %>", globals={"CurrentUser": {"ID": 1}})
        engine.render("<% cached %>X<% end_cached %>", globals={"CurrentUser": {"ID": 2}})
        assert len(store.set_calls) == 1

    def test_disabled_by_config(self, store, tmp_path):
        cfg = PCConfig.from_dict({"cache": {"enabled": False}})
        engine = TemplateEngine(cfg, store, root=tmp_path)
        assert engine.render("<% cached %>X<% end_cached %>") == "X"
        assert store.calls == 0

    def test_render_direct_matches_render(self, engine):
        text = "a<% cached $P %>b<% uncached %>$U<% end_uncached %>c<% end_cached %>d"
        data = {"P": 1, "U": "u"}
        assert engine.render_direct(text, data) == engine.render(text, data) == "abucd"

    def test_render_file(self, engine, tmp_path):
        path = write_template(tmp_path, "page.ss", "Hello $Name")
        assert engine.render_file(path, {"Name": "World"}) == "Hello World"
        assert engine.compiled_count() == 1

    def test_flush(self, engine, store):
        engine.render("<% cached %>X<% end_cached %>", name="a.ss")
        engine.flush()
        assert engine.compiled_count() == 0
        assert len(store) == 0

    def test_flush_keep_store(self, engine, store):
        engine.render("<% cached %>X<% end_cached %>", name="a.ss")
        engine.flush(store=False)
        assert engine.compiled_count() == 0
        assert len(store) == 1

    def test_fs_backend_from_config(self, tmp_path):
        cfg = PCConfig.from_dict({"cache": {"backend": "fs"}})
        engine = TemplateEngine(cfg, root=tmp_path)
        engine.render("<% cached %>X<% end_cached %>")
        assert any((tmp_path / ".pcache" / "partials").rglob("*.json"))

        # новый движок (новый процесс) видит запись
        second = TemplateEngine(cfg, root=tmp_path)
        second.render("<% cached %>X<% end_cached %>")
        assert second.last_stats.hits == 1

    def test_none_key_hash(self, store, tmp_path):
        cfg = PCConfig.from_dict({"cache": {"key_hash": "none"}})
        engine = TemplateEngine(cfg, store, root=tmp_path)
        engine.render("<% cached $A %>X<% end_cached %>", {"A": "val"}, globals={"CurrentReadingMode": "Live"})
        (key,) = store.keys()
        assert key.startswith("Live, ")
        assert key.endswith("val")

    def test_damaged_fs_entry_renders_fresh(self, tmp_path):
        """Испорченная запись файлового хранилища дает промах и перезаписывается"""
        cfg = PCConfig.from_dict({"cache": {"backend": "fs"}})
        engine = TemplateEngine(cfg, root=tmp_path)
        text = "<% cached $A %>X<% end_cached %>"
        engine.render(text, {"A": 1})

        (path,) = (tmp_path / ".pcache" / "partials").rglob("*.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        data["expires_at"] = "garbage"
        path.write_text(json.dumps(data), encoding="utf-8")

        assert engine.render(text, {"A": 1}) == "X"
        assert engine.last_stats.misses == 1
        assert engine.last_stats.writes == 1
        assert engine.render(text, {"A": 1}) == "X"
        assert engine.last_stats.hits == 1

    def test_backend_error_degrades_by_default(self, tmp_path):
        store = FailingStore(error=ConnectionError)
        engine = TemplateEngine(PCConfig(), store, root=tmp_path)
        assert engine.render("<% cached $A %>X<% end_cached %>", {"A": 1}) == "X"
        assert engine.last_stats.store_errors == 2
