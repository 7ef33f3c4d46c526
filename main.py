"""Command-line entry point for local runs without installation."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from cli.main import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
