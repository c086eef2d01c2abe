"""
events — The slice of GitHub webhook / Actions event payloads we act on.
"""

from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from .errors import GhboardError


class Account(BaseModel):
    login: str


class Repository(BaseModel):
    name: str
    owner: Account

    @property
    def full_name(self) -> str:
        return f"{self.owner.login}/{self.name}"


class Issue(BaseModel):
    number: int
    node_id: str


class Ref(BaseModel):
    ref: str


class PullRequest(BaseModel):
    number: int
    node_id: str
    draft: bool = False
    merged: bool = False
    body: Optional[str] = None
    head: Optional[Ref] = None

    @field_validator("draft", "merged", mode="before")
    @classmethod
    def null_is_false(cls, value):
        # GitHub sends `merged: null` on some pull_request actions.
        return False if value is None else value

    @property
    def branch(self) -> Optional[str]:
        return self.head.ref if self.head else None


class Event(BaseModel):
    name: str = ""
    action: Optional[str] = None
    repository: Optional[Repository] = None
    issue: Optional[Issue] = None
    pull_request: Optional[PullRequest] = None
    # `create` events
    ref: Optional[str] = None
    ref_type: Optional[str] = None


class EventError(GhboardError):
    pass


def load_event(name: str, payload: dict) -> Event:
    try:
        event = Event.model_validate(payload)
    except ValidationError as exc:
        raise EventError(f"Malformed '{name}' payload: {exc}") from exc
    event.name = name
    return event


def load_event_file(name: str, path: str) -> Event:
    """Read the payload file GitHub Actions points GITHUB_EVENT_PATH at."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        raise EventError(f"Cannot read event payload {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise EventError(f"Event payload must be a JSON object: {path}")
    return load_event(name, payload)
