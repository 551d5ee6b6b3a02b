from __future__ import annotations

import abc


class StorageBackend(abc.ABC):
    """Key/value byte store for exported artifacts."""

    @abc.abstractmethod
    def save_bytes(self, key: str, data: bytes) -> None:
        ...

    @abc.abstractmethod
    def get_bytes(self, key: str) -> bytes:
        ...

    @abc.abstractmethod
    def exists(self, key: str) -> bool:
        ...
