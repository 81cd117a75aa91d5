"""
backend/tests/fake_motor.py

Purpose:
    In-memory stand-in for the Motor collections the battle service touches.
    Supports the query/update operators the services use, including the
    positional `$` operator (dotted or `$elemMatch` filters), `$push` with
    `$each`/`$slice`, `$inc`/`$min`, and array-index `$exists` filters.
"""

from __future__ import annotations

import copy
import re
from types import SimpleNamespace

from bson import ObjectId
from pymongo.errors import DuplicateKeyError


def _is_operator_dict(value) -> bool:
    return isinstance(value, dict) and any(str(k).startswith("$") for k in value)


def _resolve(doc, path):
    values = [doc]
    for part in path.split("."):
        nxt = []
        for value in values:
            if isinstance(value, list):
                if part.isdigit():
                    idx = int(part)
                    if idx < len(value):
                        nxt.append(value[idx])
                else:
                    for item in value:
                        if isinstance(item, dict) and part in item:
                            nxt.append(item[part])
            elif isinstance(value, dict) and part in value:
                nxt.append(value[part])
        values = nxt
    return values


def _expand(values):
    out = []
    for value in values:
        out.append(value)
        if isinstance(value, list):
            out.extend(value)
    return out


def _eq(candidate, expected) -> bool:
    if isinstance(expected, re.Pattern):
        return isinstance(candidate, str) and bool(expected.search(candidate))
    return candidate == expected


def _match_value(values, cond) -> bool:
    if _is_operator_dict(cond):
        for op, arg in cond.items():
            if op == "$ne":
                if any(_eq(c, arg) for c in _expand(values)):
                    return False
            elif op == "$in":
                if not any(_eq(c, x) for c in _expand(values) for x in arg):
                    return False
            elif op == "$gte":
                if not any(c is not None and not isinstance(c, list) and c >= arg for c in values):
                    return False
            elif op == "$exists":
                if bool(values) != bool(arg):
                    return False
            elif op == "$not":
                if _match_value(values, arg):
                    return False
            elif op == "$elemMatch":
                items = [i for v in values if isinstance(v, list) for i in v]
                if not any(isinstance(i, dict) and match(i, arg) for i in items):
                    return False
            else:
                raise NotImplementedError(op)
        return True
    if cond is None:
        return not values or any(v is None for v in values)
    return any(_eq(c, cond) for c in _expand(values))


def match(doc, query) -> bool:
    return all(_match_value(_resolve(doc, key), cond) for key, cond in query.items())


def _positional_indexes(doc, query) -> dict:
    indexes = {}
    for key, cond in query.items():
        if "." not in key:
            if isinstance(cond, dict) and "$elemMatch" in cond and isinstance(doc.get(key), list):
                for i, item in enumerate(doc[key]):
                    if isinstance(item, dict) and match(item, cond["$elemMatch"]):
                        indexes[key] = i
                        break
            continue
        arr, sub = key.split(".", 1)
        if arr in indexes or not isinstance(doc.get(arr), list) or sub.split(".")[0].isdigit():
            continue
        if _is_operator_dict(cond):
            continue
        for i, item in enumerate(doc[arr]):
            if isinstance(item, dict) and match(item, {sub: cond}):
                indexes[arr] = i
                break
    return indexes


def _set_path(doc, path, value, indexes):
    parts = path.split(".")
    target = doc
    for i, part in enumerate(parts[:-1]):
        if part == "$":
            part = indexes[parts[i - 1]]
        if isinstance(target, list):
            target = target[int(part)]
        else:
            target = target.setdefault(part, {})
    last = parts[-1]
    if isinstance(target, list):
        target[int(last)] = value
    else:
        target[last] = value


class Result(SimpleNamespace):
    pass


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)
        self._limit = None

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: d.get(key), reverse=int(direction) < 0)
        return self

    def limit(self, value):
        self._limit = int(value)
        return self

    async def to_list(self, length=None):
        docs = self._docs
        if self._limit is not None:
            docs = docs[: self._limit]
        if length is not None:
            docs = docs[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    def __init__(self, docs=None, unique=()):
        self.docs = []
        self.unique = tuple(unique)
        self.update_calls = []
        for doc in docs or []:
            self._store(dict(doc))

    def _store(self, doc):
        doc.setdefault("_id", ObjectId())
        for field in self.unique:
            if field in doc and any(d.get(field) == doc[field] for d in self.docs):
                raise DuplicateKeyError(f"duplicate {field}")
        self.docs.append(copy.deepcopy(doc))
        return doc["_id"]

    async def insert_one(self, doc):
        return Result(inserted_id=self._store(doc))

    async def insert_many(self, docs):
        return Result(inserted_ids=[self._store(d) for d in docs])

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if match(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([d for d in self.docs if match(d, query or {})])

    async def count_documents(self, query):
        return sum(1 for d in self.docs if match(d, query))

    async def update_one(self, query, update, upsert=False):
        self.update_calls.append((query, update))
        doc = next((d for d in self.docs if match(d, query)), None)
        if doc is None:
            return Result(matched_count=0, modified_count=0)

        indexes = _positional_indexes(doc, query)
        for path, value in (update.get("$set") or {}).items():
            _set_path(doc, path, copy.deepcopy(value), indexes)
        for path, value in (update.get("$inc") or {}).items():
            doc[path] = doc.get(path, 0) + value
        for path, value in (update.get("$min") or {}).items():
            if path not in doc or value < doc[path]:
                doc[path] = value
        for path, value in (update.get("$push") or {}).items():
            arr = doc.setdefault(path, [])
            if isinstance(value, dict) and "$each" in value:
                arr.extend(copy.deepcopy(value["$each"]))
                if "$slice" in value:
                    cut = value["$slice"]
                    doc[path] = arr[cut:] if cut < 0 else arr[:cut]
            else:
                arr.append(copy.deepcopy(value))
        for path, cond in (update.get("$pull") or {}).items():
            doc[path] = [
                item for item in doc.get(path) or []
                if not (match(item, cond) if isinstance(cond, dict) else item == cond)
            ]
        return Result(matched_count=1, modified_count=1)


class FakeDB:
    def __init__(self, questions=None, users=None):
        self.battles = FakeCollection(unique=("battle_code",))
        self.questions = FakeCollection(questions or [])
        self.users = FakeCollection(users or [])

    def __getitem__(self, name):
        return getattr(self, name)


def make_user(username: str, **extra) -> dict:
    return {
        "_id": ObjectId(),
        "username": username,
        "xp": 0,
        "weekly_xp": 0,
        "level": 1,
        "coins": 0,
        "accuracy_score": 0,
        "mastery_score": 0,
        "focus_score": 0,
        "battle_history": [],
        **extra,
    }


def make_bank(tag: str, mcq: int = 7, paragraph: int = 8) -> list[dict]:
    """A tag-matched question bank; mcq answers are 'A{i}', paragraphs 'guideline {i}'."""
    docs = []
    for i in range(mcq):
        docs.append({
            "_id": ObjectId(),
            "question": f"{tag} mcq {i}",
            "question_type": "mcq",
            "options": [f"A{i}", f"B{i}", f"C{i}", f"D{i}"],
            "correct_answer": f"A{i}",
            "tags": [tag.upper() + " "],
        })
    for i in range(paragraph):
        docs.append({
            "_id": ObjectId(),
            "question": f"{tag} paragraph {i}",
            "question_type": "paragraph",
            "answer_guidelines": f"guideline number {i}",
            "tags": [tag],
        })
    return docs
