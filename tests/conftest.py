import pytest

from ghboard import project as project_mod
from ghboard.config import Settings


PROJECT_NODE = {
    "id": "PVT_1",
    "field": {
        "id": "PVTSSF_status",
        "options": [
            {"id": "opt_todo", "name": "Todo"},
            {"id": "opt_prog", "name": "In Progress"},
            {"id": "opt_review", "name": "In Review"},
            {"id": "opt_done", "name": "Done"},
        ],
    },
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GITHUB_ACTIONS", "GITHUB_RUN_ID", "GITHUB_RUN_ATTEMPT", "GITHUB_JOB",
                 "GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH", "GHBOARD_CONFIG",
                 "GHBOARD_CACHE_DIR", "GHBOARD_WEBHOOK_SECRET", "GHBOARD_WORKSPACE", "PROJECT_OWNER",
                 "PROJECT_NUMBER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GHBOARD_SESSION", "test-session")
    project_mod._MEMO.clear()
    yield
    project_mod._MEMO.clear()


@pytest.fixture
def settings(tmp_path):
    return Settings(owner="acme", project_number=7, cache_dir=str(tmp_path))


class FakeGraphQL:
    """Stands in for gh_graphql: answers by the first matching marker in the query."""

    def __init__(self, responses):
        self.responses = responses  # [(marker, response-or-callable)]
        self.calls = []

    def __call__(self, query, quiet=False, **variables):
        self.calls.append((query, variables))
        for marker, response in self.responses:
            if marker in query:
                return response(variables) if callable(response) else response
        raise AssertionError(f"unexpected query: {query[:60]!r}")

    def count(self, marker):
        return sum(1 for q, _ in self.calls if marker in q)

    def variables(self, marker):
        return [v for q, v in self.calls if marker in q]


@pytest.fixture
def org_project():
    return {"data": {"organization": {"projectV2": PROJECT_NODE}}}
