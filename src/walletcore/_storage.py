"""Durable key-value storage for state snapshots."""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path
from typing import Protocol

from walletcore.exceptions import StateStorageError

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_.-]+")


class StateStorage(Protocol):
    """Structural storage interface.

    Values are always codec-encoded text of the full state tree.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, text: str) -> None: ...


class MemoryStorage:
    """In-process storage, for tests and for running without a disk."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, text: str) -> None:
        self.values[key] = text


class FileStorage:
    """One file per key under *directory*; writes are atomic replaces.

    File I/O runs in the default executor so the event loop never blocks.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise StateStorageError(f"Invalid storage key {key!r}", key=key)
        return self._directory / f"{key}.json"

    async def get(self, key: str) -> str | None:
        path = self.path_for(key)
        return await asyncio.get_running_loop().run_in_executor(None, self._read, path, key)

    async def set(self, key: str, text: str) -> None:
        path = self.path_for(key)
        await asyncio.get_running_loop().run_in_executor(None, self._write, path, key, text)

    @staticmethod
    def _read(path: Path, key: str) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StateStorageError(f"Reading {path} failed: {exc}", key=key) from exc

    @staticmethod
    def _write(path: Path, key: str, text: str) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise StateStorageError(f"Writing {path} failed: {exc}", key=key) from exc
