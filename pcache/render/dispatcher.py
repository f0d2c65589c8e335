"""
Диспетчер рендеринга: применяет политику кэширования к каждому
развернутому региону шаблона по порядку.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence

from .context import RenderPass
from .renderer import NodeRenderer
from ..cache.base import DEFAULT_TTL, CacheStore
from ..compiler.keys import CacheKeyComposer
from ..compiler.regions import CachedRegion, FlattenedRegion, PassthroughRegion
from ..config.model import StoreErrorPolicy
from ..errors import StoreUnavailableError
from ..expressions.evaluator import to_key_string

logger = logging.getLogger(__name__)


class RenderDispatcher:
    """
    Рендерит последовательность FlattenedRegion с использованием хранилища.

    Для CachedRegion:
      • условие ложно → тело рендерится напрямую, ключ не строится,
        хранилище не трогается
      • условие истинно → ключ, get; попадание отдает сохраненный текст,
        промах рендерит тело и сохраняет его с TTL
    Любые ошибки хранилища (в том числе собственные исключения бэкенда)
    приводятся к StoreUnavailableError и обрабатываются по политике on_store_error.
    """

    def __init__(
        self,
        store: CacheStore,
        composer: Optional[CacheKeyComposer] = None,
        *,
        ttl: int = DEFAULT_TTL,
        on_store_error: StoreErrorPolicy = StoreErrorPolicy.DEGRADE,
        enabled: bool = True,
    ):
        self.store = store
        self.composer = composer or CacheKeyComposer()
        self.ttl = ttl
        self.on_store_error = on_store_error
        self.enabled = enabled

    def render(self, regions: Sequence[FlattenedRegion], render_pass: RenderPass) -> str:
        """
        Рендерит регионы строго по порядку и склеивает результат.

        Raises:
            ExpressionEvaluationError: Ключ или условие региона не вычисляется
            StoreUnavailableError: Хранилище недоступно и политика = raise
        """
        renderer = NodeRenderer(render_pass)
        parts: List[str] = []
        for region in regions:
            render_pass.stats.regions += 1
            if isinstance(region, PassthroughRegion):
                parts.append(renderer.render(region.body))
            elif isinstance(region, CachedRegion):
                parts.append(self._render_cached(region, renderer))
            else:
                raise TypeError(f"Unknown region: {type(region).__name__}")
        return "".join(parts)

    def _render_cached(self, region: CachedRegion, renderer: NodeRenderer) -> str:
        render_pass = renderer.render_pass
        stats = render_pass.stats

        if not self.enabled or not self._should_cache(region, render_pass):
            stats.bypassed += 1
            return renderer.render(region.body)

        key_values = [to_key_string(render_pass.evaluate(e, strict=True)) for e in region.key_exprs]
        key = self.composer.compose(renderer.global_key(), region.block_hash, key_values, region.segment)

        cached = self._store_get(key, render_pass)
        if cached is not None:
            stats.hits += 1
            logger.debug(f"Cache hit for region at {region.location} ({key})")
            return cached

        stats.misses += 1
        logger.debug(f"Cache miss for region at {region.location} ({key})")
        text = renderer.render(region.body)
        self._store_set(key, text, render_pass)
        return text

    @staticmethod
    def _should_cache(region: CachedRegion, render_pass: RenderPass) -> bool:
        if region.condition is None:
            return True
        result = render_pass.evaluate_bool(region.condition, strict=True)
        return not result if region.negated else result

    def _store_get(self, key: str, render_pass: RenderPass) -> Optional[str]:
        try:
            return _guarded(self.store.get, key)
        except StoreUnavailableError as e:
            render_pass.stats.store_errors += 1
            if self.on_store_error is StoreErrorPolicy.RAISE:
                raise
            logger.warning(f"Cache store read failed, rendering fresh: {e}")
            return None

    def _store_set(self, key: str, text: str, render_pass: RenderPass) -> None:
        try:
            _guarded(self.store.set, key, text, self.ttl)
            render_pass.stats.writes += 1
        except StoreUnavailableError as e:
            render_pass.stats.store_errors += 1
            if self.on_store_error is StoreErrorPolicy.RAISE:
                raise
            logger.warning(f"Cache store write failed, entry dropped: {e}")


def _guarded(operation: Callable[..., Any], *args: Any) -> Any:
    """Вызов хранилища, где любой сбой бэкенда становится StoreUnavailableError."""
    try:
        return operation(*args)
    except StoreUnavailableError:
        raise
    except Exception as e:
        raise StoreUnavailableError(f"{type(e).__name__}: {e}", e) from e


__all__ = ["RenderDispatcher"]
