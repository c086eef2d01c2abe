import json
import os
import time
from unittest.mock import patch

import pytest

from ghboard import project as project_mod
from ghboard.errors import ProjectError, ProjectNotFound, StatusNotFound
from ghboard.project import Board, Project, cache_path, clear_cache, fetch_project_data

from conftest import PROJECT_NODE, FakeGraphQL


@pytest.fixture
def fake(org_project):
    fake = FakeGraphQL([
        ("organization(login", org_project),
        ("addProjectV2ItemById", {"data": {"addProjectV2ItemById": {"item": {"id": "PVTI_new"}}}}),
        ("updateProjectV2ItemFieldValue",
         {"data": {"updateProjectV2ItemFieldValue": {"projectV2Item": {"id": "PVTI_x"}}}}),
        ("deleteProjectV2Item", {"data": {"deleteProjectV2Item": {"deletedItemId": "PVTI_x"}}}),
        ("projectItems", {"data": {"node": {"projectItems": {"nodes": [
            {"id": "PVTI_other", "project": {"id": "PVT_other"}},
            {"id": "PVTI_here", "project": {"id": "PVT_1"}},
        ]}}}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        yield fake


# ── Lookup ───────────────────────────────────────────────────────────────

def test_org_project_lookup(fake, tmp_path):
    project = fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    assert project.id == "PVT_1"
    assert project.status_field_id == "PVTSSF_status"
    assert project.status_option_id("In Review") == "opt_review"
    assert list(project.options) == ["Todo", "In Progress", "In Review", "Done"]
    assert fake.count("user(login") == 0
    assert fake.variables("organization(login")[0] == {"owner": "acme", "number": 7, "field": "Status"}


def test_falls_back_to_user_project(tmp_path):
    fake = FakeGraphQL([
        ("organization(login", None),
        ("user(login", {"data": {"user": {"projectV2": PROJECT_NODE}}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        project = fetch_project_data("octocat", 3, cache_dir=str(tmp_path))
    assert project.id == "PVT_1"
    assert project.owner == "octocat"
    assert fake.count("user(login") == 1


def test_org_returns_null_project_then_user(tmp_path):
    fake = FakeGraphQL([
        ("organization(login", {"data": {"organization": {"projectV2": None}}}),
        ("user(login", {"data": {"user": {"projectV2": PROJECT_NODE}}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        assert fetch_project_data("octocat", 3, cache_dir=str(tmp_path)).id == "PVT_1"


def test_project_not_found(tmp_path):
    fake = FakeGraphQL([
        ("organization(login", None),
        ("user(login", {"data": {"user": {"projectV2": None}}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        with pytest.raises(ProjectNotFound, match="Could not find project #9 for owner ghost"):
            fetch_project_data("ghost", 9, cache_dir=str(tmp_path))


def test_project_without_status_field(tmp_path):
    node = {"id": "PVT_2", "field": None}
    fake = FakeGraphQL([("organization(login", {"data": {"organization": {"projectV2": node}}})])
    with patch.object(project_mod, "gh_graphql", fake):
        project = fetch_project_data("acme", 2, cache_dir=str(tmp_path))
    assert project.status_field_id is None
    assert project.options == {}


# ── Cache ────────────────────────────────────────────────────────────────

def test_lookup_is_memoized(fake, tmp_path):
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    assert fake.count("organization(login") == 1


def test_file_cache_survives_memo_loss(fake, tmp_path):
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    project_mod._MEMO.clear()
    project = fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    assert project.id == "PVT_1"
    assert project.status_option_id("Done") == "opt_done"
    assert fake.count("organization(login") == 1


def test_file_cache_expires(fake, tmp_path):
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    path = cache_path(str(tmp_path), "acme", 7)
    with open(path) as f:
        data = json.load(f)
    data["cached_at"] = time.time() - 3600
    with open(path, "w") as f:
        json.dump(data, f)
    project_mod._MEMO.clear()
    fetch_project_data("acme", 7, cache_dir=str(tmp_path), ttl=600)
    assert fake.count("organization(login") == 2


def test_corrupt_cache_is_ignored(fake, tmp_path):
    path = cache_path(str(tmp_path), "acme", 7)
    with open(path, "w") as f:
        f.write("{not json")
    assert fetch_project_data("acme", 7, cache_dir=str(tmp_path)).id == "PVT_1"


def test_no_cache_always_queries(fake, tmp_path):
    fetch_project_data("acme", 7, use_cache=False, cache_dir=str(tmp_path))
    fetch_project_data("acme", 7, use_cache=False, cache_dir=str(tmp_path))
    assert fake.count("organization(login") == 2
    assert os.listdir(tmp_path) == []


def test_cache_path_is_scoped_by_session(tmp_path, monkeypatch):
    first = cache_path(str(tmp_path), "acme", 7)
    monkeypatch.setenv("GHBOARD_SESSION", "other")
    assert cache_path(str(tmp_path), "acme", 7) != first
    assert cache_path(str(tmp_path), "acme", 8) != cache_path(str(tmp_path), "acme", 7)


def test_session_key_from_actions(monkeypatch):
    monkeypatch.delenv("GHBOARD_SESSION")
    monkeypatch.setenv("GITHUB_RUN_ID", "100")
    monkeypatch.setenv("GITHUB_RUN_ATTEMPT", "2")
    monkeypatch.setenv("GITHUB_JOB", "triage")
    assert project_mod.session_key() == "100-2-triage"


def test_clear_cache(fake, tmp_path):
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    clear_cache("acme", 7, str(tmp_path))
    assert not os.path.exists(cache_path(str(tmp_path), "acme", 7))
    fetch_project_data("acme", 7, cache_dir=str(tmp_path))
    assert fake.count("organization(login") == 2


def test_project_round_trips_through_dict():
    project = Project.from_dict(PROJECT_NODE, "acme", 7)
    again = Project.from_dict(project.to_dict())
    assert (again.id, again.owner, again.number) == ("PVT_1", "acme", 7)
    assert again.options == project.options


# ── Board operations ─────────────────────────────────────────────────────

def test_scalar_lookups(fake, settings):
    board = Board(settings)
    assert board.get_project_id() == "PVT_1"
    assert board.get_status_field_id() == "PVTSSF_status"
    assert board.get_status_option_id("Todo") == "opt_todo"
    assert board.get_status_option_id("Blocked") is None


def test_add_to_project(fake, settings):
    assert Board(settings).add_to_project("I_1") == "PVTI_new"
    assert fake.variables("addProjectV2ItemById") == [{"projectId": "PVT_1", "contentId": "I_1"}]


def test_add_to_project_failure_returns_none(settings, org_project):
    fake = FakeGraphQL([("organization(login", org_project), ("addProjectV2ItemById", None)])
    with patch.object(project_mod, "gh_graphql", fake):
        assert Board(settings).add_to_project("I_1") is None


def test_item_id_for_content_filters_by_project(fake, settings):
    assert Board(settings).get_item_id_for_content("I_1") == "PVTI_here"


def test_item_id_for_content_missing(settings, org_project):
    fake = FakeGraphQL([
        ("organization(login", org_project),
        ("projectItems", {"data": {"node": {"projectItems": {"nodes": []}}}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        assert Board(settings).get_item_id_for_content("I_1") is None


def test_set_status(fake, settings, capsys):
    Board(settings).set_status("PVTI_x", "In Progress")
    assert fake.variables("updateProjectV2ItemFieldValue") == [{
        "projectId": "PVT_1", "itemId": "PVTI_x",
        "fieldId": "PVTSSF_status", "optionId": "opt_prog",
    }]
    assert "✓ Item moved to 'In Progress'" in capsys.readouterr().out


def test_set_unknown_status_lists_options(fake, settings):
    with pytest.raises(StatusNotFound) as exc:
        Board(settings).set_status("PVTI_x", "Blocked")
    assert "Todo, In Progress, In Review, Done" in str(exc.value)
    assert fake.count("updateProjectV2ItemFieldValue") == 0


def test_remove_item(fake, settings, capsys):
    Board(settings).remove_item("PVTI_x")
    assert fake.variables("deleteProjectV2Item") == [{"projectId": "PVT_1", "itemId": "PVTI_x"}]
    assert "✓ Item removed from project" in capsys.readouterr().out


def test_add_and_set_status(fake, settings):
    assert Board(settings).add_and_set_status("I_1", "Todo") == "PVTI_new"
    assert fake.variables("updateProjectV2ItemFieldValue")[0]["itemId"] == "PVTI_new"


def test_add_and_set_status_add_fails(settings, org_project):
    fake = FakeGraphQL([("organization(login", org_project), ("addProjectV2ItemById", None)])
    with patch.object(project_mod, "gh_graphql", fake):
        with pytest.raises(ProjectError, match="Failed to add item to project"):
            Board(settings).add_and_set_status("I_1", "Todo")


def test_ensure_status_existing_item(fake, settings):
    assert Board(settings).ensure_status("I_1", "Done") == "PVTI_here"
    assert fake.count("addProjectV2ItemById") == 0


def test_ensure_status_adds_missing_item(settings, org_project, capsys):
    fake = FakeGraphQL([
        ("organization(login", org_project),
        ("projectItems", {"data": {"node": {"projectItems": {"nodes": []}}}}),
        ("addProjectV2ItemById", {"data": {"addProjectV2ItemById": {"item": {"id": "PVTI_new"}}}}),
        ("updateProjectV2ItemFieldValue", {"data": {}}),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        assert Board(settings).ensure_status("I_1", "Done") == "PVTI_new"
    assert "Item not in project, adding first..." in capsys.readouterr().out


def test_ensure_status_cannot_add(settings, org_project):
    fake = FakeGraphQL([
        ("organization(login", org_project),
        ("projectItems", None),
        ("addProjectV2ItemById", None),
    ])
    with patch.object(project_mod, "gh_graphql", fake):
        with pytest.raises(ProjectError, match="Could not find or add item to project"):
            Board(settings).ensure_status("I_1", "Done")


def test_memo_expires_after_ttl(fake):
    fetch_project_data("acme", 7, ttl=600)
    later = time.time() + 3600
    with patch.object(project_mod.time, "time", return_value=later):
        fetch_project_data("acme", 7, ttl=600)
    assert fake.count("organization(login") == 2


def test_memo_within_ttl_is_reused(fake):
    fetch_project_data("acme", 7, ttl=600)
    with patch.object(project_mod.time, "time", return_value=time.time() + 60):
        fetch_project_data("acme", 7, ttl=600)
    assert fake.count("organization(login") == 1


@pytest.mark.parametrize("content", ["[]", '"text"', '{"cached_at": 1, "project": []}'])
def test_cache_with_wrong_shape_is_ignored(fake, tmp_path, content):
    with open(cache_path(str(tmp_path), "acme", 7), "w") as f:
        f.write(content)
    assert fetch_project_data("acme", 7, cache_dir=str(tmp_path)).id == "PVT_1"
    assert fake.count("organization(login") == 1


def test_owner_type_recorded(fake, tmp_path):
    assert fetch_project_data("acme", 7, cache_dir=str(tmp_path)).owner_type == "organization"

    user = FakeGraphQL([
        ("organization(login", None),
        ("user(login", {"data": {"user": {"projectV2": PROJECT_NODE}}}),
    ])
    with patch.object(project_mod, "gh_graphql", user):
        project = fetch_project_data("octocat", 3, cache_dir=str(tmp_path))
    assert project.owner_type == "user"

    project_mod._MEMO.clear()
    cached = fetch_project_data("octocat", 3, cache_dir=str(tmp_path))
    assert cached.owner_type == "user"
