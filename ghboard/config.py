"""
config — Runtime configuration for the board helpers.

Configuration can be provided with a JSON file.
Search order:
1) $GHBOARD_CONFIG (explicit path)
2) <workspace>/.ghboard/config.json  ($GHBOARD_WORKSPACE, else the cwd)
3) ~/.ghboard/config.json

If no config file exists, built-in defaults are used. Environment
variables (PROJECT_OWNER, PROJECT_NUMBER, GHBOARD_CACHE_DIR,
GHBOARD_WEBHOOK_SECRET) win over the file. GH_TOKEN is read by `gh`
itself and never touched here.
"""

import json
import os
import sys

from .errors import ConfigError


WORKSPACE = os.getcwd()


_DEFAULT_CONFIG = {
    "owner": None,
    "project_number": None,
    "status_field": "Status",
    "statuses": {
        "todo": "Todo",
        "in_progress": "In Progress",
        "in_review": "In Review",
        "done": "Done",
    },
    "cache": True,
    "cache_ttl": 600,
    "cache_dir": None,
    "webhook_secret": None,
}


def _candidate_paths():
    env_path = os.getenv("GHBOARD_CONFIG")
    workspace = os.getenv("GHBOARD_WORKSPACE") or WORKSPACE
    return [
        env_path,
        os.path.join(workspace, ".ghboard", "config.json"),
        os.path.expanduser("~/.ghboard/config.json"),
    ]


def _load_config():
    for path in _candidate_paths():
        if not path:
            continue
        if not os.path.isfile(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            print(f"[ghboard] Failed to load config at {path}: {exc}", file=sys.stderr)
            break
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a JSON object: {path}")
        return data
    return {}


class Settings:
    __slots__ = (
        "owner", "project_number", "status_field", "statuses",
        "cache", "cache_ttl", "cache_dir", "webhook_secret",
    )

    def __init__(self, owner=None, project_number=None, status_field="Status",
                 statuses=None, cache=True, cache_ttl=600, cache_dir=None,
                 webhook_secret=None):
        self.owner = owner
        self.project_number = project_number
        self.status_field = status_field
        self.statuses = dict(_DEFAULT_CONFIG["statuses"], **(statuses or {}))
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.cache_dir = cache_dir
        self.webhook_secret = webhook_secret

    def __repr__(self):
        return f"Settings(owner={self.owner!r}, project_number={self.project_number!r})"

    def status_name(self, state):
        """Map a logical state ("todo", "done", ...) to the board's option name."""
        return self.statuses.get(state, state)

    def require_project(self):
        """Return (owner, number) or raise ConfigError if either is missing."""
        if not self.owner:
            raise ConfigError("Project owner is not set (PROJECT_OWNER or --owner)")
        if self.project_number is None:
            raise ConfigError("Project number is not set (PROJECT_NUMBER or --project)")
        return self.owner, self.project_number


def _parse_number(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Project number must be an integer, got {value!r}") from None


def load_settings(**overrides):
    """Build Settings from defaults, the config file, the environment, then overrides.

    Overrides whose value is None are ignored so argparse defaults can be
    passed straight through.
    """
    data = dict(_DEFAULT_CONFIG)
    data.update(_load_config())

    env = {
        "owner": os.getenv("PROJECT_OWNER"),
        "project_number": os.getenv("PROJECT_NUMBER"),
        "cache_dir": os.getenv("GHBOARD_CACHE_DIR"),
        "webhook_secret": os.getenv("GHBOARD_WEBHOOK_SECRET"),
    }
    data.update({k: v for k, v in env.items() if v})
    data.update({k: v for k, v in overrides.items() if v is not None})

    data["project_number"] = _parse_number(data.get("project_number"))
    if not data.get("cache_dir"):
        data["cache_dir"] = os.getenv("TMPDIR") or "/tmp"

    return Settings(**{k: data[k] for k in Settings.__slots__ if k in data})
