from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

# TTL по умолчанию для частичного кэша, секунды
DEFAULT_TTL = 600


@runtime_checkable
class CacheStore(Protocol):
    """
    Хранилище отрендеренных фрагментов.

    Ключи - непрозрачные строки от CacheKeyComposer. Ошибки бэкенда
    реализации сообщают через StoreUnavailableError. Реализации должны
    допускать параллельные get/set из разных проходов рендеринга.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


__all__ = ["CacheStore", "DEFAULT_TTL"]
