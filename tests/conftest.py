"""Pytest configuration for the `tests/` suite.

Puts the repository root on `sys.path` so the suite runs against the source
tree without an editable install.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _prepend_sys_path(path: Path) -> None:
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_REPO_ROOT = Path(__file__).resolve().parents[1]

_prepend_sys_path(_REPO_ROOT)
