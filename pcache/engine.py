from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .cache import CacheStore
from .compiler import BlockFlattener, CacheKeyComposer, FlattenedRegion
from .config import PCConfig, create_store
from .render import NodeRenderer, RenderDispatcher, RenderPass, RenderStats
from .template import TemplateAST, parse_template

logger = logging.getLogger(__name__)

GLOBAL_KEY_TEMPLATE_NAME = "<global_key>"


# ----------------------------- CompiledTemplate ----------------------------- #

@dataclass(frozen=True)
class CompiledTemplate:
    """
    Результат компиляции: AST и развернутые регионы.
    Неизменяем, поэтому перекомпиляция не мешает идущему рендеру.
    """
    name: str
    source_hash: str
    ast: TemplateAST
    regions: Tuple[FlattenedRegion, ...]


def _sha1_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


# ----------------------------- TemplateEngine ----------------------------- #

class TemplateEngine:
    """
    Точка входа: компиляция шаблонов с кэшем компиляции и рендер
    через диспетчер частичного кэша.

    Экземпляр можно разделять между потоками: каждый рендер получает
    собственный RenderPass, общими остаются только скомпилированные
    шаблоны (под блокировкой) и хранилище.
    """

    def __init__(self, config: Optional[PCConfig] = None, store: Optional[CacheStore] = None, *, root: Optional[Path] = None):
        self.config = config or PCConfig()
        self.root = (root or Path.cwd()).resolve()
        self.store: CacheStore = store if store is not None else create_store(self.config, self.root)
        self.composer = CacheKeyComposer(self.config.cache.key_hash)
        self.global_key_ast = parse_template(self.config.global_key, GLOBAL_KEY_TEMPLATE_NAME)
        self.last_stats: Optional[RenderStats] = None

        self._compiled: Dict[str, CompiledTemplate] = {}
        self._lock = threading.Lock()

    # --------------------------- compile --------------------------- #

    def compile(self, source: str, name: str = "") -> CompiledTemplate:
        """
        Компилирует шаблон (parse + flatten) с кэшированием по (name, sha1(source)).
        Именованный шаблон занимает одну запись и вытесняется при изменении
        исходника; безымянные шаблоны различаются по sha1(source).

        Raises:
            LexerError, ParserError: Синтаксическая ошибка шаблона
            StructuralError: Блок кэша внутри loop/if
        """
        source_hash = _sha1_text(source)
        with self._lock:
            slot = name or source_hash
            compiled = self._compiled.get(slot)
            if compiled is not None and compiled.source_hash == source_hash:
                return compiled

            logger.debug(f"Compiling template '{name or '<string>'}' ({source_hash[:12]})")
            ast = parse_template(source, name)
            regions = BlockFlattener(self.composer, name).flatten(ast)
            compiled = CompiledTemplate(name=name, source_hash=source_hash, ast=ast, regions=regions)
            # старая версия с тем же именем вытесняется
            self._compiled[slot] = compiled
            return compiled

    # --------------------------- render --------------------------- #

    def render(self, source: str, data: Any = None, *, globals: Optional[Dict[str, Any]] = None, name: str = "") -> str:
        """
        Рендерит шаблон с частичным кэшированием.

        Args:
            source: Текст шаблона
            data: Корневой объект данных (словарь или объект с атрибутами)
            globals: Глобальные значения шаблона поверх globals из конфигурации
            name: Имя шаблона для кэша компиляции и сообщений об ошибках

        Returns:
            Отрендеренный текст
        """
        compiled = self.compile(source, name)
        render_pass = self._new_pass(data, globals)
        dispatcher = RenderDispatcher(
            self.store,
            self.composer,
            ttl=self.config.cache.default_ttl,
            on_store_error=self.config.cache.on_store_error,
            enabled=self.config.cache.enabled,
        )
        try:
            return dispatcher.render(compiled.regions, render_pass)
        finally:
            self.last_stats = render_pass.stats

    def render_file(self, path: Path, data: Any = None, *, globals: Optional[Dict[str, Any]] = None) -> str:
        path = Path(path)
        return self.render(path.read_text(encoding="utf-8"), data, globals=globals, name=str(path))

    def render_direct(self, source: str, data: Any = None, *, globals: Optional[Dict[str, Any]] = None, name: str = "") -> str:
        """
        Эталонный рендер неразвернутого дерева без кэша.
        """
        render_pass = self._new_pass(data, globals)
        return NodeRenderer(render_pass).render(parse_template(source, name))

    def _new_pass(self, data: Any, globals: Optional[Dict[str, Any]]) -> RenderPass:
        merged = dict(self.config.globals)
        merged.update(globals or {})
        return RenderPass(data, merged, self.global_key_ast)

    # --------------------------- maintenance --------------------------- #

    def flush(self, store: bool = True) -> None:
        """
        Сбрасывает скомпилированные шаблоны и (по умолчанию) хранилище.
        """
        with self._lock:
            self._compiled.clear()
        if store:
            self.store.clear()
        logger.debug(f"Engine flushed (store={store})")

    def compiled_count(self) -> int:
        with self._lock:
            return len(self._compiled)


__all__ = ["TemplateEngine", "CompiledTemplate"]
