import logging

import app.database as _db
from app.utils import utcnow

logger = logging.getLogger("nova.seed")


def _mcq(question, options, correct, tags, difficulty="easy", explanation=""):
    return {
        "question": question,
        "question_type": "mcq",
        "options": options,
        "correct_answer": correct,
        "difficulty": difficulty,
        "category": "Programming",
        "tags": tags,
        "explanation": explanation,
    }


def _para(question, guidelines, tags, difficulty="medium"):
    return {
        "question": question,
        "question_type": "paragraph",
        "answer_guidelines": guidelines,
        "difficulty": difficulty,
        "category": "Programming",
        "tags": tags,
    }


JS = ["javascript"]
PY = ["python"]

SEED_QUESTIONS = [
    # ---- JavaScript ----
    _mcq("Which keyword declares a block-scoped constant?", ["var", "let", "const", "static"], "const", JS),
    _mcq("What does `typeof null` return?", ["null", "object", "undefined", "number"], "object", JS, "medium"),
    _mcq("Which method adds an element to the end of an array?", ["push", "shift", "unshift", "splice"], "push", JS),
    _mcq("What is the result of `0.1 + 0.2 === 0.3`?", ["true", "false", "NaN", "TypeError"], "false", JS, "medium"),
    _mcq("Which operator checks equality without type coercion?", ["==", "===", "=", "!="], "===", JS),
    _mcq("Which value is falsy?", ["'0'", "[]", "{}", "0"], "0", JS, "medium"),
    _mcq("Which function parses a string into an integer?", ["parseInt", "Number.toFixed", "Math.round", "String"], "parseInt", JS),
    _mcq("What does `Array.prototype.map` return?", ["undefined", "a new array", "the same array", "a boolean"], "a new array", JS),
    _para("What is a closure?", "a function that remembers variables from its enclosing scope", JS),
    _para("What does the event loop do?", "runs queued callbacks when the call stack is empty", JS, "hard"),
    _para("What is hoisting?", "declarations are moved to the top of their scope", JS),
    _para("What is a Promise?", "an object representing the eventual result of an asynchronous operation", JS),
    _para("What does `async/await` provide?", "syntax for writing promise based code sequentially", JS),
    _para("What is the difference between `let` and `var`?", "let is block scoped", JS),
    _para("What is prototypal inheritance?", "objects inherit properties from their prototype", JS, "hard"),
    _para("What does `this` refer to inside a method call?", "the object the method was called on", JS),
    # ---- Python ----
    _mcq("Which type is immutable?", ["list", "dict", "set", "tuple"], "tuple", PY),
    _mcq("What does `len('abc')` return?", ["2", "3", "4", "error"], "3", PY),
    _mcq("Which keyword defines a generator value?", ["return", "yield", "await", "lambda"], "yield", PY),
    _mcq("Which statement handles exceptions?", ["try", "catch", "rescue", "guard"], "try", PY),
    _mcq("What does `//` do?", ["floor division", "comment", "power", "modulo"], "floor division", PY),
    _mcq("Which built-in returns an object's attribute names?", ["dir", "vars", "id", "type"], "dir", PY, "medium"),
    _mcq("What is the default return value of a function?", ["0", "False", "None", "''"], "None", PY),
    _mcq("Which collection keeps insertion order and unique keys?", ["list", "dict", "tuple", "frozenset"], "dict", PY, "medium"),
    _para("What is a decorator?", "a function that wraps another function to extend its behavior", PY),
    _para("What is the GIL?", "a lock that lets only one thread execute python bytecode at a time", PY, "hard"),
    _para("What is a list comprehension?", "a concise way to build a list from an iterable", PY),
    _para("What does a context manager guarantee?", "setup and cleanup around a block of code", PY),
    _para("What is duck typing?", "an object's suitability is decided by its methods not its type", PY),
    _para("What is a virtual environment?", "an isolated set of installed packages", PY),
    _para("What does `__init__` do?", "initializes a new instance", PY),
    _para("What is the difference between `is` and `==`?", "is compares identity", PY, "medium"),
]


async def seed_question_bank() -> int:
    """Insert the dev question bank when the collection is empty."""
    existing = await _db.db.questions.count_documents({})
    if existing:
        logger.info("Question bank seed skipped (%d questions present)", existing)
        return 0

    now = utcnow()
    docs = [{**q, "created_by": "system", "created_at": now, "updated_at": now} for q in SEED_QUESTIONS]
    result = await _db.db.questions.insert_many(docs)
    return len(result.inserted_ids)
