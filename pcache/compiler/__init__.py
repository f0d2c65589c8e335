"""
Компиляция шаблона: разворачивание блоков кэша и построение ключей.
"""

from .flattener import BlockFlattener, flatten_template
from .keys import CacheKeyComposer
from .regions import CachedRegion, FlattenedRegion, PassthroughRegion

__all__ = [
    "BlockFlattener",
    "flatten_template",
    "CacheKeyComposer",
    "CachedRegion",
    "PassthroughRegion",
    "FlattenedRegion",
]
