"""Document store for ingestion metadata.

Documents are plain JSON-able dicts addressed by ``(collection, doc_id)``.
The ingestion history written here is observational only: nothing in the
merge path reads it back.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from .exceptions import StoreUnavailable


LOGGER = logging.getLogger("recoledger.documents")

UPLOADED_FILES = "uploaded_files"

Listener = Callable[[List[Dict[str, Any]]], None]


class DocumentStore(Protocol):
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def set(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    def list(self, collection: str) -> List[Dict[str, Any]]: ...

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]: ...


class _ListenerMixin:
    """Snapshot listeners: called with the full collection after every change."""

    def _init_listeners(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        self._listeners[collection].append(listener)
        listener(self.list(collection))

        def unsubscribe() -> None:
            if listener in self._listeners[collection]:
                self._listeners[collection].remove(listener)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        listeners = list(self._listeners.get(collection, []))
        if not listeners:
            return
        snapshot = self.list(collection)
        for listener in listeners:
            listener(snapshot)


class InMemoryDocumentStore(_ListenerMixin):
    def __init__(self) -> None:
        self._docs: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._lock = threading.Lock()
        self._init_listeners()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._docs.get(collection, {}).get(doc_id)
        return dict(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        with self._lock:
            self._docs[collection][doc_id] = dict(document)
        self._notify(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._docs.get(collection, {}).pop(doc_id, None)
        self._notify(collection)

    def list(self, collection: str) -> List[Dict[str, Any]]:
        return [dict(d) for _, d in sorted(self._docs.get(collection, {}).items())]


class JsonDocumentStore(_ListenerMixin):
    """One ``<root>/<collection>/<doc_id>.json`` file per document."""

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root).expanduser().resolve()
        self._init_listeners()

    def _path(self, collection: str, doc_id: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in str(doc_id))
        return self.root / collection / f"{safe}.json"

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(collection, doc_id)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                return json.load(stream)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailable(str(path), "read", exc) from exc

    def set(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        path = self._path(collection, doc_id)
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as stream:
                json.dump(document, stream, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError as exc:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StoreUnavailable(str(path), "write", exc) from exc
        self._notify(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        path = self._path(collection, doc_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StoreUnavailable(str(path), "delete", exc) from exc
        self._notify(collection)

    def list(self, collection: str) -> List[Dict[str, Any]]:
        folder = self.root / collection
        if not folder.is_dir():
            return []
        docs: List[Dict[str, Any]] = []
        for path in sorted(folder.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as stream:
                    docs.append(json.load(stream))
            except (OSError, json.JSONDecodeError) as exc:
                raise StoreUnavailable(str(path), "read", exc) from exc
        return docs


def generate_id() -> str:
    return uuid.uuid4().hex


@dataclass
class UploadedFile:
    """History entry for one ingested upload."""

    file_name: str
    file_type: str
    tenant_id: str
    platform_id: str
    records_count: int
    errors: int
    duplicates: int
    ledger_path: str
    month: str
    storage_path: Optional[str] = None
    uploaded_by: str = "admin"
    upload_date: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    id: str = field(default_factory=generate_id)

    @property
    def status(self) -> str:
        if self.errors == 0:
            return "success"
        return "partial" if self.records_count > 0 else "failed"

    def to_document(self) -> Dict[str, Any]:
        doc = asdict(self)
        doc["status"] = self.status
        return doc


def record_upload(store: DocumentStore, upload: UploadedFile) -> Dict[str, Any]:
    doc = upload.to_document()
    store.set(UPLOADED_FILES, upload.id, doc)
    LOGGER.info("Recorded upload %s (%s, %s)", upload.file_name, upload.file_type, doc["status"])
    return doc
