"""Blob stores addressed by hierarchical path strings.

Both implementations raise :class:`StoreNotFound` for a missing blob and
:class:`StoreUnavailable` for any other failure. A ``put_bytes`` call either
replaces the whole blob or leaves the previous bytes in place.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from .exceptions import StoreNotFound, StoreUnavailable


LOGGER = logging.getLogger("recoledger.storage")


class BlobStore(Protocol):
    def get_bytes(self, address: str) -> bytes: ...

    def put_bytes(self, address: str, data: bytes, content_type: Optional[str] = None) -> None: ...


def _check_address(address: str) -> str:
    parts = [p for p in str(address).replace("\\", "/").split("/") if p]
    if not parts or any(p in (".", "..") for p in parts):
        raise ValueError(f"Invalid blob address: {address!r}")
    return "/".join(parts)


class FileSystemBlobStore:
    """Blobs stored as files under ``root``; writes go through a temp file and ``os.replace``."""

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root).expanduser().resolve()

    def path_for(self, address: str) -> Path:
        return self.root.joinpath(*_check_address(address).split("/"))

    def get_bytes(self, address: str) -> bytes:
        path = self.path_for(address)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise StoreNotFound(address) from exc
        except OSError as exc:
            raise StoreUnavailable(address, "read", exc) from exc

    def put_bytes(self, address: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self.path_for(address)
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as exc:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StoreUnavailable(address, "write", exc) from exc
        LOGGER.debug("Wrote %d bytes to %s (%s)", len(data), path, content_type or "unknown type")

    def exists(self, address: str) -> bool:
        return self.path_for(address).is_file()


class InMemoryBlobStore:
    """Dict-backed store, mostly for tests and dry runs."""

    def __init__(self) -> None:
        self._blobs: Dict[str, Tuple[bytes, Optional[str]]] = {}
        self._lock = threading.Lock()
        self.writes: List[str] = []

    def get_bytes(self, address: str) -> bytes:
        key = _check_address(address)
        with self._lock:
            if key not in self._blobs:
                raise StoreNotFound(address)
            return self._blobs[key][0]

    def put_bytes(self, address: str, data: bytes, content_type: Optional[str] = None) -> None:
        key = _check_address(address)
        with self._lock:
            self._blobs[key] = (bytes(data), content_type)
            self.writes.append(key)

    def content_type(self, address: str) -> Optional[str]:
        entry = self._blobs.get(_check_address(address))
        return entry[1] if entry else None

    def exists(self, address: str) -> bool:
        return _check_address(address) in self._blobs
