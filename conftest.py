"""Pytest configuration applied to the entire test suite."""

from __future__ import annotations

import sys
from pathlib import Path


_REPO_ROOT = str(Path(__file__).resolve().parent)
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)
