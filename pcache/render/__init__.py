"""
Рендеринг: проход с мемоизацией выражений, рендерер узлов и
диспетчер регионов частичного кэша.
"""

from .context import LoopInfo, RenderPass, RenderStats, Scope
from .dispatcher import RenderDispatcher
from .renderer import NodeRenderer

__all__ = [
    "RenderPass",
    "RenderStats",
    "Scope",
    "LoopInfo",
    "NodeRenderer",
    "RenderDispatcher",
]
