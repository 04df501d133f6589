"""In-memory stand-ins for the async MongoDB collection API used by the mirror."""
import copy
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

_MISSING = object()


def _get_path(document: dict, path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_path(document: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _sort_key(value: Any):
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (1, value.timestamp())
    if isinstance(value, (int, float)):
        return (1, value)
    return (2, str(value))


def _text_match(document: dict, search: str) -> bool:
    haystack = " ".join([
        str(document.get("name", "")),
        str(_get_path(document, "persona.backstory") or ""),
        " ".join(_get_path(document, "musicStyle.primaryGenres") or []),
    ]).lower()
    return any(term in haystack for term in search.lower().split())


def matches(document: dict, query: dict) -> bool:
    for key, expected in query.items():
        if key == "$text":
            if not _text_match(document, expected["$search"]):
                return False
            continue

        actual = _get_path(document, key)
        if isinstance(expected, dict) and "$in" in expected:
            candidates = actual if isinstance(actual, list) else [actual]
            if not any(c in expected["$in"] for c in candidates):
                return False
        elif isinstance(actual, list):
            if expected not in actual and expected != actual:
                return False
        elif actual is _MISSING or actual != expected:
            return False
    return True


def _project(document: dict, projection: Optional[dict]) -> dict:
    result = copy.deepcopy(document)
    if projection and projection.get("_id") == 0:
        result.pop("_id", None)
    return result


class FakeCursor:
    def __init__(self, documents: list[dict]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, key: str, direction: int = 1):
        self._documents.sort(key=lambda d: _sort_key(_get_path(d, key)), reverse=direction < 0)
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None) -> list[dict]:
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        return documents


class FakeCollection:
    """Supports the subset of AsyncCollection the services call."""

    def __init__(self, name: str, unique: tuple[str, ...] = ()):
        self.name = name
        self.unique = unique
        self.documents: list[dict] = []
        self.fail_writes = False

    def _check_writable(self):
        if self.fail_writes:
            raise ConnectionError(f"{self.name} is unavailable")

    async def insert_one(self, document: dict):
        self._check_writable()
        for field in self.unique:
            if any(d.get(field) == document.get(field) for d in self.documents):
                raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {field}_1")
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))

    async def find_one(self, query: dict, projection: Optional[dict] = None) -> Optional[dict]:
        for document in self.documents:
            if matches(document, query):
                return _project(document, projection)
        return None

    def find(self, query: dict, projection: Optional[dict] = None) -> FakeCursor:
        return FakeCursor([_project(d, projection) for d in self.documents if matches(d, query)])

    async def count_documents(self, query: dict) -> int:
        return sum(1 for d in self.documents if matches(d, query))

    async def find_one_and_update(
        self,
        query: dict,
        update: dict,
        projection: Optional[dict] = None,
        return_document: bool = ReturnDocument.BEFORE,
    ) -> Optional[dict]:
        self._check_writable()
        for document in self.documents:
            if not matches(document, query):
                continue
            before = _project(document, projection)
            for path, value in update.get("$set", {}).items():
                _set_path(document, path, copy.deepcopy(value))
            for path, spec in update.get("$push", {}).items():
                array = _get_path(document, path)
                if array is _MISSING:
                    array = []
                    _set_path(document, path, array)
                array.extend(copy.deepcopy(spec["$each"]))
                for sort_field, direction in spec.get("$sort", {}).items():
                    array.sort(key=lambda e: _sort_key(e.get(sort_field)), reverse=direction < 0)
            if return_document == ReturnDocument.AFTER:
                return _project(document, projection)
            return before
        return None


class FakeDatabase:
    def __init__(self):
        self.collections = {
            "ai_artists": FakeCollection("ai_artists", unique=("artistId",)),
            "ai_generation_logs": FakeCollection("ai_generation_logs", unique=("generationId",)),
        }

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]
