"""
JSON-file document collections.

Each collection is one file, <data_dir>/<name>.json, holding
{"documents": [...]}. Reads load the whole file; writes go through a temp
file and an atomic move. A per-file re-entrant lock serialises
read-modify-write cycles inside one process.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from ..utils.config import data_dir
from ..utils.exceptions import StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]
Predicate = Callable[[Document], bool]

_file_locks: Dict[str, threading.RLock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.RLock()
        return lock


def _match_all(_: Document) -> bool:
    return True


class JsonCollection:
    """A named collection of JSON documents keyed by "id"."""

    def __init__(self, name: str, directory: Optional[Path] = None):
        self.name = name
        self._directory = directory

    @property
    def path(self) -> Path:
        return (self._directory or data_dir()) / f"{self.name}.json"

    @property
    def lock(self) -> threading.RLock:
        return _lock_for(self.path)

    def _load(self) -> List[Document]:
        path = self.path
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to load collection {self.name} from {path}: {e}")
        documents = raw.get("documents") if isinstance(raw, dict) else None
        if not isinstance(documents, list):
            raise StorageError(f"Collection file {path} has no documents list")
        return documents

    def _save(self, documents: List[Document]) -> None:
        """Write JSON file atomically"""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump({"documents": documents}, tf, indent=2, ensure_ascii=False, default=str)
            temp_path = Path(tf.name)

        try:
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            logger.error("Collection write failed", collection=self.name, error=str(e))
            raise StorageError(f"Failed to save collection {self.name} to {path}: {e}")

    def find(
        self,
        predicate: Optional[Predicate] = None,
        sort_key: Optional[Callable[[Document], Any]] = None,
        reverse: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        with self.lock:
            documents = [d for d in self._load() if (predicate or _match_all)(d)]
        if sort_key is not None:
            documents.sort(key=sort_key, reverse=reverse)
        if limit is not None:
            documents = documents[:limit]
        return documents

    def find_one(self, predicate: Predicate) -> Optional[Document]:
        with self.lock:
            return next((d for d in self._load() if predicate(d)), None)

    def count(self, predicate: Optional[Predicate] = None) -> int:
        with self.lock:
            return sum(1 for d in self._load() if (predicate or _match_all)(d))

    def distinct(self, field: str, predicate: Optional[Predicate] = None) -> List[Any]:
        seen: List[Any] = []
        for d in self.find(predicate):
            value = d.get(field)
            if value is not None and value not in seen:
                seen.append(value)
        return seen

    def insert_one(self, document: Document) -> Document:
        doc = dict(document)
        doc.setdefault("id", uuid4().hex)
        with self.lock:
            documents = self._load()
            documents.append(doc)
            self._save(documents)
        return doc

    def update_one(
        self,
        predicate: Predicate,
        changes: Document,
        upsert: bool = False,
        defaults: Optional[Document] = None,
    ) -> Optional[Document]:
        """
        Merge `changes` into the first matching document.

        With upsert=True and no match, inserts defaults + changes. Returns the
        resulting document, or None when nothing matched and upsert is off.
        """
        with self.lock:
            documents = self._load()
            for i, doc in enumerate(documents):
                if predicate(doc):
                    documents[i] = {**doc, **changes}
                    self._save(documents)
                    return documents[i]
            if not upsert:
                return None
            doc = {**(defaults or {}), **changes}
            doc.setdefault("id", uuid4().hex)
            documents.append(doc)
            self._save(documents)
            return doc

    def delete_one(self, predicate: Predicate) -> bool:
        with self.lock:
            documents = self._load()
            for i, doc in enumerate(documents):
                if predicate(doc):
                    del documents[i]
                    self._save(documents)
                    return True
        return False

    def delete_many(self, predicate: Predicate) -> int:
        with self.lock:
            documents = self._load()
            kept = [d for d in documents if not predicate(d)]
            removed = len(documents) - len(kept)
            if removed:
                self._save(kept)
        return removed
