"""
views — Read-only summaries (board, statuses, site metadata).
"""

import json

from .ui import BOLD, DIM, paint


def project_url(project):
    scope = "users" if project.owner_type == "user" else "orgs"
    return f"https://github.com/{scope}/{project.owner}/projects/{project.number}"


def view_project(project):
    print(paint(BOLD, f"📋 Project #{project.number}") + f"  →  {project.owner}")
    print(f"    {paint(DIM, project_url(project))}")
    print(f"    id: {project.id}")
    if project.status_field_id is None:
        print(f"    {paint(DIM, 'No single-select Status field')}")
        return
    print(f"    Status field: {project.status_field_id}")
    for name, option_id in project.options.items():
        print(f"      {name:20s}{paint(DIM, option_id)}")


def view_site(site, links):
    print(json.dumps({"site": site, "links": links}, indent=2))
