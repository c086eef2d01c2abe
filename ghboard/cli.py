"""
cli — Argparse entry point. One subcommand per board helper.

Every command prints a single scalar (or one value per line) on stdout so
workflow steps can capture it:

    ITEM=$(ghboard add "$NODE_ID")
    ghboard set-status "$ITEM" "In Progress"
"""

import argparse
import logging
import os
import sys
import textwrap

from . import ui
from .automation import apply_event
from .config import load_settings
from .errors import GhboardError
from .events import load_event_file
from .gh import get_issue_node_id, get_pr_node_id, split_repo
from .linking import (
    extract_issue_number_from_branch, extract_issue_numbers_from_body,
    get_linked_issue_numbers,
)
from .project import Board, clear_cache
from .sitemeta import LINKS, SITE_CONFIG
from .views import view_project, view_site


def _emit(value):
    print("" if value is None else value)


def _emit_lines(values):
    for v in values:
        print(v)


def _repo(args):
    try:
        return split_repo(args.repo)
    except ValueError as exc:
        raise GhboardError(str(exc)) from None


# ═════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═════════════════════════════════════════════════════════════════════════════

def cmd_project_id(args, settings):
    _emit(Board(settings).get_project_id())


def cmd_status_field_id(args, settings):
    _emit(Board(settings).get_status_field_id())


def cmd_status_option_id(args, settings):
    _emit(Board(settings).get_status_option_id(args.name))


def cmd_statuses(args, settings):
    view_project(Board(settings).project)


def cmd_add(args, settings):
    item_id = Board(settings).add_to_project(args.content_id)
    if not item_id:
        raise GhboardError("Failed to add item to project")
    _emit(item_id)


def cmd_item_id(args, settings):
    _emit(Board(settings).get_item_id_for_content(args.content_id))


def cmd_set_status(args, settings):
    Board(settings).set_status(args.item_id, args.status)


def cmd_remove(args, settings):
    Board(settings).remove_item(args.item_id)


def cmd_add_status(args, settings):
    Board(settings).add_and_set_status(args.content_id, args.status)


def cmd_ensure_status(args, settings):
    Board(settings).ensure_status(args.content_id, args.status)


def cmd_branch_issue(args, settings):
    _emit(extract_issue_number_from_branch(args.branch))


def cmd_body_issues(args, settings):
    body = args.body
    if body is None or body == "-":
        body = sys.stdin.read()
    _emit_lines(extract_issue_numbers_from_body(body))


def cmd_linked_issues(args, settings):
    owner, name = _repo(args)
    _emit_lines(get_linked_issue_numbers(args.pr, owner, name, args.branch, args.body))


def cmd_issue_node_id(args, settings):
    owner, name = _repo(args)
    _emit(get_issue_node_id(args.number, owner, name))


def cmd_pr_node_id(args, settings):
    owner, name = _repo(args)
    _emit(get_pr_node_id(args.number, owner, name))


def cmd_apply_event(args, settings):
    name = args.event or os.getenv("GITHUB_EVENT_NAME")
    path = args.path or os.getenv("GITHUB_EVENT_PATH")
    if not name or not path:
        raise GhboardError("Event name and payload path are required "
                           "(--event/--path or GITHUB_EVENT_NAME/GITHUB_EVENT_PATH)")
    event = load_event_file(name, path)
    transitions = apply_event(event, Board(settings), settings)
    if not transitions:
        ui.info(f"Nothing to do for {name}/{event.action}")
    if not all(t.ok for t in transitions):
        raise GhboardError(f"{sum(not t.ok for t in transitions)} transition(s) failed")


def cmd_serve(args, settings):
    from .server import start
    start(port=args.port, host=args.host, settings=settings)


def cmd_site(args, settings):
    view_site(SITE_CONFIG, LINKS)


def cmd_clear_cache(args, settings):
    owner, number = settings.require_project()
    clear_cache(owner, number, settings.cache_dir, settings.status_field)
    ui.ok(f"Cache cleared for {owner} #{number}")


# ═════════════════════════════════════════════════════════════════════════════
# MAIN
# ═════════════════════════════════════════════════════════════════════════════

def build_parser():
    parser = argparse.ArgumentParser(
        prog="ghboard",
        description="GitHub Projects V2 board helpers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Environment:
              PROJECT_OWNER, PROJECT_NUMBER   board to operate on
              GH_TOKEN                        token used by gh (project read/write)

            Example:
              ghboard ensure-status "$PR_NODE_ID" "In Review"
        """),
    )
    parser.add_argument("--owner", help="Project owner (org or user login)")
    parser.add_argument("--project", help="Project number")
    parser.add_argument("--no-cache", action="store_true", help="Always query the board")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add(name, func, help_text):
        p = sub.add_parser(name, help=help_text)
        p.set_defaults(func=func)
        return p

    add("project-id", cmd_project_id, "Print the project node id")
    add("status-field-id", cmd_status_field_id, "Print the Status field id")
    p = add("status-option-id", cmd_status_option_id, "Print the option id for a status name")
    p.add_argument("name")
    add("statuses", cmd_statuses, "Show the board and its status options")

    p = add("add", cmd_add, "Add an issue/PR to the board, print the item id")
    p.add_argument("content_id")
    p = add("item-id", cmd_item_id, "Print the board item id for an issue/PR")
    p.add_argument("content_id")
    p = add("set-status", cmd_set_status, "Set the status of a board item")
    p.add_argument("item_id")
    p.add_argument("status")
    p = add("remove", cmd_remove, "Remove an item from the board")
    p.add_argument("item_id")
    p = add("add-status", cmd_add_status, "Add an issue/PR and set its status")
    p.add_argument("content_id")
    p.add_argument("status")
    p = add("ensure-status", cmd_ensure_status, "Find or add an issue/PR, then set its status")
    p.add_argument("content_id")
    p.add_argument("status")

    p = add("branch-issue", cmd_branch_issue, "Print the issue number named by a branch")
    p.add_argument("branch")
    p = add("body-issues", cmd_body_issues, "Print issues closed by a PR body (stdin if '-')")
    p.add_argument("body", nargs="?")
    p = add("linked-issues", cmd_linked_issues, "Print issues linked to a PR")
    p.add_argument("pr", type=int)
    p.add_argument("--repo", required=True, help="owner/name")
    p.add_argument("--branch")
    p.add_argument("--body")
    p = add("issue-node-id", cmd_issue_node_id, "Print an issue's node id")
    p.add_argument("number", type=int)
    p.add_argument("--repo", required=True, help="owner/name")
    p = add("pr-node-id", cmd_pr_node_id, "Print a pull request's node id")
    p.add_argument("number", type=int)
    p.add_argument("--repo", required=True, help="owner/name")

    p = add("apply-event", cmd_apply_event, "Apply board automation for a GitHub event")
    p.add_argument("--event", help="Event name (default $GITHUB_EVENT_NAME)")
    p.add_argument("--path", help="Payload file (default $GITHUB_EVENT_PATH)")
    p = add("serve", cmd_serve, "Run the webhook receiver")
    p.add_argument("--port", type=int, default=3333)
    p.add_argument("--host", default="127.0.0.1")
    add("site", cmd_site, "Print the site metadata")
    add("clear-cache", cmd_clear_cache, "Forget the cached board lookup")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(
            owner=args.owner,
            project_number=args.project,
            cache=False if args.no_cache else None,
        )
        args.func(args, settings)
    except GhboardError as exc:
        ui.error(str(exc))
        return 1
    return 0
