from __future__ import annotations

import sys


def report(component: str, message: str) -> None:
    """Surface a recoverable fault on stderr; the session carries on."""
    print(f"[geomerge.{component}] {message}", file=sys.stderr)
