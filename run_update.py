"""Compatibility wrapper around the dashboard update runner."""

from __future__ import annotations
import sys
from typing import List, Optional
from src.dashboard.runner import main as run_update


def main(argv: Optional[List[str]] = None) -> None:
    """Delegate to the dashboard update runner."""
    run_update(argv)


if __name__ == "__main__":
    main(sys.argv[1:])
