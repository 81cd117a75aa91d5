"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths for the backend package and the
    minimal environment app.config needs.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]
_TESTS_DIR = _THIS_FILE.parent

for candidate in (str(_BACKEND_DIR), str(_TESTS_DIR)):
    if candidate not in sys.path:
        sys.path.insert(0, candidate)

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MONGO_DB", "nova_learn_test")
