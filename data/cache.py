import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

from cachetools import TLRUCache


class CacheFacade(ABC):
    """Хранилище ключ-значение с временем жизни записей (строки JSON)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


def _time_to_use(key: str, item: Tuple[str, int], now: float) -> float:
    return now + item[1]


class MemoryCache(CacheFacade):
    """
    Кэш в памяти процесса на TLRUCache: у каждой записи свой срок жизни.
    Просроченные записи вытесняются при каждой записи в кэш, размер
    ограничен maxsize.
    """

    def __init__(self, maxsize: int = 5000, clock: Callable[[], float] = time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=clock)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._cache.get(key)
        return item[0] if item is not None else None

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._cache[key] = (value, ttl_seconds)

    def remove(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self):
        with self._lock:
            self._cache.expire()
            return len(self._cache)
