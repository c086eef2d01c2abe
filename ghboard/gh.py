"""
gh — GitHub CLI wrappers, GraphQL helpers, and data fetchers.
"""

import json
import logging
import subprocess

from . import ui

log = logging.getLogger(__name__)


# ── Low-level gh CLI ─────────────────────────────────────────────────────

def gh(*args, json_output=False, quiet=False):
    cmd = ["gh"] + list(args)
    log.debug("running %s", " ".join(cmd[:3]))
    r = subprocess.run(cmd, capture_output=True, text=True)
    if r.returncode != 0:
        if quiet:
            log.debug("gh failed (quiet): %s", r.stderr.strip())
        else:
            ui.error(f"gh error: {r.stderr.strip()}")
        return None
    if not json_output:
        return r.stdout.strip()
    try:
        return json.loads(r.stdout)
    except ValueError:
        if not quiet:
            ui.error("gh error: response was not JSON")
        return None


def graphql_args(query, variables):
    """Build the `gh api graphql` argv. Ints go through -F so gh sends them typed."""
    args = ["api", "graphql", "-f", f"query={query}"]
    for name, value in variables.items():
        if isinstance(value, bool) or not isinstance(value, int):
            args.extend(["-f", f"{name}={value}"])
        else:
            args.extend(["-F", f"{name}={value}"])
    return args


def gh_graphql(query, quiet=False, **variables):
    """Run a GraphQL document through `gh api graphql`.

    Returns the decoded response or None on failure. With quiet=True a
    failure is only logged at debug level.
    """
    log.debug("graphql variables %s", sorted(variables))
    return gh(*graphql_args(query, variables), json_output=True, quiet=quiet)


def dig(data, *path):
    """Walk nested dicts, returning None as soon as a key is missing or null."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
        if data is None:
            return None
    return data


def split_repo(repo):
    """'owner/name' → (owner, name)."""
    owner, sep, name = repo.partition("/")
    if not sep or not owner or not name:
        raise ValueError(f"Repository must look like owner/name, got {repo!r}")
    return owner, name


# ── Node id lookups ──────────────────────────────────────────────────────

ISSUE_ID_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) { id }
  }
}
"""

PR_ID_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) { id }
  }
}
"""

CLOSING_REFS_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      closingIssuesReferences(first: 10) {
        nodes { number }
      }
    }
  }
}
"""


def get_issue_node_id(number, owner, repo):
    data = gh_graphql(ISSUE_ID_QUERY, quiet=True, owner=owner, repo=repo, number=int(number))
    return dig(data, "data", "repository", "issue", "id")


def get_pr_node_id(number, owner, repo):
    data = gh_graphql(PR_ID_QUERY, quiet=True, owner=owner, repo=repo, number=int(number))
    return dig(data, "data", "repository", "pullRequest", "id")


def fetch_closing_issue_numbers(pr_number, owner, repo):
    """Issues GitHub itself links as closed by the PR. Empty list on failure."""
    data = gh_graphql(CLOSING_REFS_QUERY, quiet=True, owner=owner, repo=repo,
                      number=int(pr_number))
    nodes = dig(data, "data", "repository", "pullRequest",
                "closingIssuesReferences", "nodes") or []
    return [n["number"] for n in nodes if n and n.get("number") is not None]
