"""
linking — Work out which issues a pull request belongs to.

Branch names supported, first match wins:
  issue-42, issue/42          anywhere in the name
  42-description, 42/feature  leading number
  feature/42-add-login        number between separators
  feat/42, hotfix-42          trailing number
"""

import logging
import re

from .gh import fetch_closing_issue_numbers

log = logging.getLogger(__name__)

BRANCH_PATTERNS = [
    re.compile(r"issue[/-]([0-9]+)"),
    re.compile(r"^([0-9]+)[/-]"),
    re.compile(r"[/-]([0-9]+)[/-]"),
    re.compile(r"[/-]([0-9]+)$"),
]

CLOSING_KEYWORD = re.compile(
    r"(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+#([0-9]+)",
    re.IGNORECASE,
)


def extract_issue_number_from_branch(branch):
    if not branch:
        return None
    for pattern in BRANCH_PATTERNS:
        m = pattern.search(branch)
        if m:
            return int(m.group(1))
    return None


def extract_issue_numbers_from_body(body):
    """Numbers after Closes/Fixes/Resolves #N (any tense, any case), sorted and unique."""
    if not body:
        return []
    return sorted({int(n) for n in CLOSING_KEYWORD.findall(body)})


def get_linked_issue_numbers(pr_number, owner, repo, branch=None, body=None):
    """Issue numbers for a PR: GitHub's closing references, then body keywords, then branch."""
    issues = fetch_closing_issue_numbers(pr_number, owner, repo)
    if issues:
        log.debug("PR #%s linked via closing references: %s", pr_number, issues)
        return issues

    issues = extract_issue_numbers_from_body(body)
    if issues:
        log.debug("PR #%s linked via body keywords: %s", pr_number, issues)
        return issues

    number = extract_issue_number_from_branch(branch)
    if number is not None:
        log.debug("PR #%s linked via branch %r: %s", pr_number, branch, number)
        return [number]
    return []
