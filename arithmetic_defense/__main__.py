from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    If this module is executed as a script (``python arithmetic_defense/__main__.py``),
    the package may not be discoverable by Python. This helper inserts the
    parent directory of the package into ``sys.path`` so that imports resolve
    correctly.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


if __package__:
    # python -m arithmetic_defense
    from .app import run
else:
    # Executed as a plain script (IDE "Run Python File", absolute path, etc.)
    _ensure_repo_root_on_path()
    from arithmetic_defense.app import run


def main() -> int:
    """Entry point for running the game from the command line."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
