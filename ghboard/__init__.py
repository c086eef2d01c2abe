"""
ghboard — GitHub Projects V2 board helpers for issues and pull requests.

Usage:
    ghboard ensure-status "$NODE_ID" "In Progress"
    ghboard apply-event                # inside a GitHub Actions job
    python3 -m ghboard --help

Requires: gh CLI authenticated (GH_TOKEN with project read/write).
"""

from .cli import main
