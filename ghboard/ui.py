"""
ui — Terminal output primitives for the board helpers.

Colours and message helpers. Inside GitHub Actions, errors become
`::error::` workflow commands and colour is switched off.
"""

import os
import sys

# ── Colour constants ─────────────────────────────────────────────────────

BOLD    = "\033[1m"
DIM     = "\033[2m"
GREEN   = "\033[32m"
YELLOW  = "\033[33m"
RED     = "\033[31m"
RESET   = "\033[0m"


def in_actions():
    return os.getenv("GITHUB_ACTIONS") == "true"


def paint(colour, text):
    if in_actions() or not sys.stdout.isatty():
        return text
    return f"{colour}{text}{RESET}"


# ── Messages ─────────────────────────────────────────────────────────────

def ok(text):
    print(paint(GREEN, f"✓ {text}"))


def info(text):
    print(text)


def warn(text):
    if in_actions():
        print(f"::warning::{text}", file=sys.stderr)
    else:
        print(f"  {YELLOW}⚠ {text}{RESET}", file=sys.stderr)


def error(text):
    if in_actions():
        print(f"::error::{text}", file=sys.stderr)
    else:
        print(f"  {RED}❌ {text}{RESET}", file=sys.stderr)
