"""
project — Projects V2 board lookup and item operations.

The board (node id + Status field) is looked up once per session: first in
an in-process memo, then in a small JSON file under the cache dir, and only
then over the network. The file name carries the owner, the project number
and a session key so parallel jobs never read each other's entries.
"""

import json
import logging
import os
import re
import tempfile
import time

from . import ui
from .errors import ProjectError, ProjectNotFound, StatusNotFound
from .gh import dig, gh_graphql

log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# DATA MODEL
# ═════════════════════════════════════════════════════════════════════════════

class Project:
    __slots__ = ("id", "owner", "number", "status_field_id", "options", "owner_type")

    def __init__(self, id, owner, number, status_field_id=None, options=None,
                 owner_type="organization"):
        self.id = id
        self.owner = owner
        self.number = number
        self.status_field_id = status_field_id
        self.options = dict(options or {})  # option name -> option id
        self.owner_type = owner_type        # "organization" or "user"

    def __repr__(self):
        return f"Project({self.owner!r}, #{self.number}, {self.id!r})"

    def status_option_id(self, name):
        return self.options.get(name)

    def to_dict(self):
        return {
            "id": self.id,
            "owner": self.owner,
            "number": self.number,
            "owner_type": self.owner_type,
            "field": {
                "id": self.status_field_id,
                "options": [{"id": oid, "name": name} for name, oid in self.options.items()],
            },
        }

    @classmethod
    def from_dict(cls, data, owner=None, number=None, owner_type="organization"):
        """Accept both the GraphQL `projectV2` node and our own to_dict() output."""
        field = data.get("field") or {}
        options = {o["name"]: o["id"] for o in field.get("options") or []}
        return cls(
            data["id"],
            data.get("owner", owner),
            data.get("number", number),
            field.get("id"),
            options,
            data.get("owner_type", owner_type),
        )


# ═════════════════════════════════════════════════════════════════════════════
# LOOKUP
# ═════════════════════════════════════════════════════════════════════════════

_PROJECT_FIELDS = """
      projectV2(number: $number) {
        id
        field(name: $field) {
          ... on ProjectV2SingleSelectField {
            id
            options { id name }
          }
        }
      }
"""

ORG_PROJECT_QUERY = (
    "query($owner: String!, $number: Int!, $field: String!) {\n"
    "  organization(login: $owner) {" + _PROJECT_FIELDS + "  }\n}"
)

USER_PROJECT_QUERY = (
    "query($owner: String!, $number: Int!, $field: String!) {\n"
    "  user(login: $owner) {" + _PROJECT_FIELDS + "  }\n}"
)


def _query_project(owner, number, field):
    """Return (projectV2 node, "organization" | "user"), node None if neither has it."""
    # Org first; for a user login GitHub answers with an error, so stay quiet.
    data = gh_graphql(ORG_PROJECT_QUERY, quiet=True, owner=owner, number=int(number), field=field)
    node = dig(data, "data", "organization", "projectV2")
    if node:
        return node, "organization"
    log.debug("no organization project %s#%s, trying user", owner, number)
    data = gh_graphql(USER_PROJECT_QUERY, owner=owner, number=int(number), field=field)
    return dig(data, "data", "user", "projectV2"), "user"


# ── Cache ────────────────────────────────────────────────────────────────

_MEMO = {}


def session_key():
    """Identify the current run so cache files are never shared between jobs."""
    explicit = os.getenv("GHBOARD_SESSION")
    if explicit:
        return explicit
    run_id = os.getenv("GITHUB_RUN_ID")
    if run_id:
        parts = [run_id, os.getenv("GITHUB_RUN_ATTEMPT", "1"), os.getenv("GITHUB_JOB", "")]
        return "-".join(p for p in parts if p)
    return str(os.getppid())


def cache_path(cache_dir, owner, number, field="Status"):
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", f"{owner}-{number}-{field}-{session_key()}")
    return os.path.join(cache_dir, f".ghboard-project-{safe}.json")


def _expired(cached_at, ttl):
    return ttl is not None and time.time() - cached_at > ttl


def _read_cache(path, ttl):
    """Return (project dict, cached_at) from the cache file, or None."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        log.debug("ignoring unreadable cache %s: %s", path, exc)
        return None
    if not isinstance(data, dict) or not isinstance(data.get("project"), dict):
        log.debug("ignoring malformed cache %s", path)
        return None
    cached_at = data.get("cached_at", 0)
    if _expired(cached_at, ttl):
        log.debug("cache %s expired", path)
        return None
    return data["project"], cached_at


def _write_cache(path, project, cached_at):
    directory = os.path.dirname(path) or "."
    payload = {"cached_at": cached_at, "project": project.to_dict()}
    try:
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".ghboard-", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp, path)
    except OSError as exc:
        ui.warn(f"Could not write project cache {path}: {exc}")


def clear_cache(owner, number, cache_dir=None, field="Status"):
    """Forget the memoized project, in memory and on disk."""
    _MEMO.pop((owner, int(number), field), None)
    if cache_dir:
        try:
            os.remove(cache_path(cache_dir, owner, number, field))
        except FileNotFoundError:
            pass


def fetch_project_data(owner, number, *, field="Status", use_cache=True,
                       cache_dir=None, ttl=600):
    """Resolve the board and its status field. Raises ProjectNotFound.

    Both cache layers honour ttl, so a long-running server picks up
    status options added to the board.
    """
    key = (owner, int(number), field)
    if use_cache and key in _MEMO:
        project, cached_at = _MEMO[key]
        if not _expired(cached_at, ttl):
            return project
        log.debug("memoized project %s#%s expired", owner, number)
        del _MEMO[key]

    path = cache_path(cache_dir, owner, number, field) if use_cache and cache_dir else None
    if path:
        cached = _read_cache(path, ttl)
        if cached:
            log.debug("project cache hit %s", path)
            data, cached_at = cached
            project = Project.from_dict(data, owner, int(number))
            _MEMO[key] = (project, cached_at)
            return project

    node, owner_type = _query_project(owner, number, field)
    if not node:
        raise ProjectNotFound(owner, number)

    project = Project.from_dict(node, owner, int(number), owner_type)
    if use_cache:
        cached_at = time.time()
        _MEMO[key] = (project, cached_at)
        if path:
            _write_cache(path, project, cached_at)
    return project


# ═════════════════════════════════════════════════════════════════════════════
# BOARD
# ═════════════════════════════════════════════════════════════════════════════

ADD_ITEM_MUTATION = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {
    projectId: $projectId
    contentId: $contentId
  }) {
    item { id }
  }
}
"""

ITEMS_FOR_CONTENT_QUERY = """
query($id: ID!) {
  node(id: $id) {
    ... on Issue {
      projectItems(first: 50) {
        nodes { id project { id } }
      }
    }
    ... on PullRequest {
      projectItems(first: 50) {
        nodes { id project { id } }
      }
    }
  }
}
"""

SET_STATUS_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
  updateProjectV2ItemFieldValue(input: {
    projectId: $projectId
    itemId: $itemId
    fieldId: $fieldId
    value: { singleSelectOptionId: $optionId }
  }) {
    projectV2Item { id }
  }
}
"""

DELETE_ITEM_MUTATION = """
mutation($projectId: ID!, $itemId: ID!) {
  deleteProjectV2Item(input: {
    projectId: $projectId
    itemId: $itemId
  }) {
    deletedItemId
  }
}
"""


class Board:
    """Item operations against one project, built from Settings."""

    def __init__(self, settings, use_cache=None):
        self.settings = settings
        self.use_cache = settings.cache if use_cache is None else use_cache
        self._project = None

    @property
    def project(self):
        if self._project is None:
            owner, number = self.settings.require_project()
            self._project = fetch_project_data(
                owner, number,
                field=self.settings.status_field,
                use_cache=self.use_cache,
                cache_dir=self.settings.cache_dir,
                ttl=self.settings.cache_ttl,
            )
        return self._project

    # ── Lookups ──────────────────────────────────────────────────────────

    def get_project_id(self):
        return self.project.id

    def get_status_field_id(self):
        return self.project.status_field_id

    def get_status_option_id(self, status_name):
        return self.project.status_option_id(status_name)

    def status_names(self):
        return list(self.project.options)

    def get_item_id_for_content(self, content_id):
        """Item id of the content on this board, or None."""
        data = gh_graphql(ITEMS_FOR_CONTENT_QUERY, id=content_id)
        nodes = dig(data, "data", "node", "projectItems", "nodes") or []
        for node in nodes:
            if dig(node, "project", "id") == self.project.id:
                return node.get("id")
        return None

    # ── Mutations ────────────────────────────────────────────────────────

    def add_to_project(self, content_id):
        """Add an issue or PR by node id. Returns the new item id or None."""
        data = gh_graphql(ADD_ITEM_MUTATION, projectId=self.project.id, contentId=content_id)
        return dig(data, "data", "addProjectV2ItemById", "item", "id")

    def set_status(self, item_id, status_name):
        project = self.project
        option_id = project.status_option_id(status_name)
        if not option_id:
            raise StatusNotFound(status_name, project.options)

        data = gh_graphql(
            SET_STATUS_MUTATION,
            projectId=project.id,
            itemId=item_id,
            fieldId=project.status_field_id,
            optionId=option_id,
        )
        if data is None:
            raise ProjectError(f"Failed to move item to '{status_name}'")
        ui.ok(f"Item moved to '{status_name}'")

    def remove_item(self, item_id):
        data = gh_graphql(DELETE_ITEM_MUTATION, projectId=self.project.id, itemId=item_id)
        if data is None:
            raise ProjectError("Failed to remove item from project")
        ui.ok("Item removed from project")

    # ── Compound operations ──────────────────────────────────────────────

    def add_and_set_status(self, content_id, status_name):
        item_id = self.add_to_project(content_id)
        if not item_id:
            raise ProjectError("Failed to add item to project")
        self.set_status(item_id, status_name)
        return item_id

    def ensure_status(self, content_id, status_name):
        """Find the content on the board (adding it if missing), then set its status."""
        item_id = self.get_item_id_for_content(content_id)
        if not item_id:
            ui.info("Item not in project, adding first...")
            item_id = self.add_to_project(content_id)
        if not item_id:
            raise ProjectError("Could not find or add item to project")
        self.set_status(item_id, status_name)
        return item_id
