from pathlib import Path

import pytest

from pcache.config import PCConfig
from pcache.engine import TemplateEngine

# Импорт из унифицированной инфраструктуры
from tests.infrastructure import CountingStore, FakeClock, write_config


@pytest.fixture(autouse=True)
def _no_cache_env(monkeypatch):
    # переменная окружения не должна влиять на тесты, если тест не задает ее сам
    monkeypatch.delenv("PC_CACHE", raising=False)
    monkeypatch.delenv("PC_DEBUG", raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> CountingStore:
    return CountingStore(clock=clock)


@pytest.fixture
def engine(store, tmp_path: Path) -> TemplateEngine:
    """Движок с конфигурацией по умолчанию и считающим хранилищем."""
    return TemplateEngine(PCConfig(), store, root=tmp_path)


@pytest.fixture
def tmpproj(tmp_path: Path) -> Path:
    """Минимальный проект: pcache.yaml с файловым хранилищем и шаблон page.ss."""
    root = tmp_path
    write_config(root, """
        cache:
          backend: fs
          default_ttl: 120
        globals:
          CurrentReadingMode: Stage.Live
    """)
    (root / "page.ss").write_text(
        "<% cached $Title %>Title: $Title<% uncached %> [$Now]<% end_uncached %>!<% end_cached %>\n",
        encoding="utf-8",
    )
    (root / "data.yaml").write_text("Title: Home\nNow: 1\n", encoding="utf-8")
    return root
