from abc import ABC, abstractmethod
from typing import Any, Hashable, Optional


class Cache(ABC):
    """Minimal cache interface so services can swap backends (TTL memory, none) without changing callers."""

    @abstractmethod
    def get(self, key: Hashable) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: Hashable) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def cleanup(self) -> int:
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def destroy(self) -> None:
        ...
