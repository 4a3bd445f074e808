"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import path for the backend package plus small
    in-memory stand-ins for the Motor collections the odds pipeline uses.
"""

from __future__ import annotations

import copy
import sys
from pathlib import Path

from pymongo.errors import DuplicateKeyError

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, dict) and any(k.startswith("$") for k in expected):
            for op, operand in expected.items():
                if actual is None:
                    return False
                if op == "$gte" and not actual >= operand:
                    return False
                if op == "$lte" and not actual <= operand:
                    return False
                if op == "$in" and actual not in operand:
                    return False
        elif actual != expected:
            return False
    return True


def _project(doc: dict, projection: dict | None) -> dict:
    if not projection:
        return copy.deepcopy(doc)
    include = [k for k, v in projection.items() if v and k != "_id"]
    if include:
        out = {k: copy.deepcopy(doc[k]) for k in include if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        return out
    return {k: copy.deepcopy(v) for k, v in doc.items() if projection.get(k, 1)}


class _FakeCursor:
    def __init__(self, docs: list[dict], projection: dict | None = None):
        self.docs = docs
        self.projection = projection

    def sort(self, key: str, direction: int = 1):
        self.docs = sorted(self.docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n: int):
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length: int | None = None):
        docs = self.docs if length is None else self.docs[:length]
        return [_project(d, self.projection) for d in docs]


class FakeCollection:
    """Just enough of the Motor collection surface for repository code.

    ``unique`` names the field tuple a unique index covers; inserts that
    collide raise the real DuplicateKeyError.
    """

    def __init__(self, docs: list[dict] | None = None, unique: tuple[str, ...] | None = None):
        self.docs = [dict(d) for d in (docs or [])]
        self.unique = unique

    def _key(self, doc: dict):
        return tuple(doc.get(f) for f in self.unique) if self.unique else None

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        return _FakeCursor([d for d in self.docs if _matches(d, query or {})], projection)

    async def insert_one(self, doc):
        if self.unique and any(self._key(d) == self._key(doc) for d in self.docs):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs.append(dict(doc))

    async def replace_one(self, query, doc, upsert=False):
        for i, existing in enumerate(self.docs):
            if _matches(existing, query):
                self.docs[i] = dict(doc)
                return
        if upsert:
            self.docs.append(dict(doc))

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return
        if upsert:
            self.docs.append({**query, **update.get("$set", {})})

    async def find_one_and_update(self, query, update, projection=None, return_document=None):
        for doc in self.docs:
            if _matches(doc, query):
                for field, amount in update.get("$inc", {}).items():
                    doc[field] = doc.get(field, 0) + amount
                return _project(doc, projection)
        return None
