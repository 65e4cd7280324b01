"""``python -m prebuilt_cli`` and the ``prebuilt-fetch`` console script."""

from __future__ import annotations

import sys
from typing import Sequence


def run(argv: Sequence[str] | None = None) -> int:
    from .main import main as cli_main

    return cli_main(sys.argv[1:] if argv is None else list(argv))


def main() -> int:
    return run()


if __name__ == "__main__":
    raise SystemExit(run())
