"""
automation — Move issues and pull requests across the board as GitHub events arrive.

    issues opened/reopened          issue → todo
    issues closed                   issue → done
    create (branch)                 issue named by the branch → in_progress
    pull_request opened/reopened/
      ready_for_review              PR + linked issues → in_review (in_progress if draft)
    pull_request converted_to_draft PR + linked issues → in_progress
    pull_request closed, merged     PR + linked issues → done
    pull_request closed, unmerged   PR removed, linked issues → in_progress

Logical states are mapped to option names through Settings.statuses.
"""

import logging

from . import ui
from .errors import GhboardError
from .gh import get_issue_node_id
from .linking import extract_issue_number_from_branch, get_linked_issue_numbers

log = logging.getLogger(__name__)


class Transition:
    __slots__ = ("kind", "number", "status", "ok", "detail")

    def __init__(self, kind, number, status, ok=True, detail=None):
        self.kind = kind        # "issue" or "pull_request"
        self.number = number
        self.status = status    # option name, or None for a removal
        self.ok = ok
        self.detail = detail

    def __repr__(self):
        mark = "ok" if self.ok else "failed"
        return f"Transition({self.kind} #{self.number} → {self.status!r}, {mark})"

    def to_dict(self):
        return {
            "kind": self.kind,
            "number": self.number,
            "status": self.status,
            "ok": self.ok,
            "detail": self.detail,
        }


# ═════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═════════════════════════════════════════════════════════════════════════════

def _move(board, kind, number, content_id, status, *, add_first=False):
    try:
        if add_first:
            board.add_and_set_status(content_id, status)
        else:
            board.ensure_status(content_id, status)
    except GhboardError as exc:
        ui.error(f"{kind} #{number}: {exc}")
        return Transition(kind, number, status, ok=False, detail=str(exc))
    return Transition(kind, number, status)


def _move_issues(board, repo, numbers, status):
    owner, name = repo.owner.login, repo.name
    results = []
    for number in numbers:
        node_id = get_issue_node_id(number, owner, name)
        if not node_id:
            ui.warn(f"Issue #{number} not found in {repo.full_name}, skipping")
            results.append(Transition("issue", number, status, ok=False,
                                      detail="issue not found"))
            continue
        results.append(_move(board, "issue", number, node_id, status))
    return results


def _linked_issues(pr, repo):
    return get_linked_issue_numbers(
        pr.number, repo.owner.login, repo.name, pr.branch, pr.body,
    )


# ═════════════════════════════════════════════════════════════════════════════
# EVENT HANDLERS
# ═════════════════════════════════════════════════════════════════════════════

def on_issue(event, board, settings):
    issue = event.issue
    if event.action in ("opened", "reopened"):
        status = settings.status_name("todo")
        return [_move(board, "issue", issue.number, issue.node_id, status,
                      add_first=event.action == "opened")]
    if event.action == "closed":
        return [_move(board, "issue", issue.number, issue.node_id, settings.status_name("done"))]
    return []


def on_create(event, board, settings):
    if event.ref_type != "branch":
        return []
    number = extract_issue_number_from_branch(event.ref)
    if number is None:
        log.debug("branch %r names no issue", event.ref)
        return []
    return _move_issues(board, event.repository, [number], settings.status_name("in_progress"))


def on_pull_request(event, board, settings):
    pr, repo, action = event.pull_request, event.repository, event.action

    if action in ("opened", "reopened", "ready_for_review"):
        state = "in_progress" if pr.draft else "in_review"
    elif action == "converted_to_draft":
        state = "in_progress"
    elif action == "closed":
        state = "done" if pr.merged else None
    else:
        return []

    results = []
    if state is None:
        results.append(_remove_pr(board, pr))
        state = "in_progress"
    else:
        results.append(_move(board, "pull_request", pr.number, pr.node_id,
                             settings.status_name(state)))

    numbers = _linked_issues(pr, repo)
    if not numbers:
        ui.info(f"No linked issues found for PR #{pr.number}")
    results.extend(_move_issues(board, repo, numbers, settings.status_name(state)))
    return results


def _remove_pr(board, pr):
    try:
        item_id = board.get_item_id_for_content(pr.node_id)
        if item_id:
            board.remove_item(item_id)
            return Transition("pull_request", pr.number, None)
    except GhboardError as exc:
        ui.error(f"pull_request #{pr.number}: {exc}")
        return Transition("pull_request", pr.number, None, ok=False, detail=str(exc))
    return Transition("pull_request", pr.number, None, detail="not on board")


HANDLERS = {
    "issues": (on_issue, "issue"),
    "create": (on_create, None),
    "pull_request": (on_pull_request, "pull_request"),
    "pull_request_target": (on_pull_request, "pull_request"),
}


def apply_event(event, board, settings):
    """Run the transitions for one event. Unknown events return an empty list."""
    entry = HANDLERS.get(event.name)
    if entry is None:
        log.debug("ignoring event %r", event.name)
        return []
    handler, needs = entry
    if needs and getattr(event, needs) is None:
        log.debug("%s event without %s payload", event.name, needs)
        return []
    if event.repository is None and event.name != "issues":
        log.debug("%s event without repository", event.name)
        return []
    return handler(event, board, settings)
