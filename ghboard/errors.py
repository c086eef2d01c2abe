"""
errors — Exceptions raised by board operations.
"""


class GhboardError(Exception):
    """Base class; the CLI turns these into exit code 1."""


class ConfigError(GhboardError):
    pass


class ProjectError(GhboardError):
    pass


class ProjectNotFound(ProjectError):
    def __init__(self, owner, number):
        self.owner = owner
        self.number = number
        super().__init__(f"Could not find project #{number} for owner {owner}")


class StatusNotFound(ProjectError):
    def __init__(self, status_name, available):
        self.status_name = status_name
        self.available = list(available)
        listing = ", ".join(self.available) or "(none)"
        super().__init__(
            f"Status option '{status_name}' not found in project. "
            f"Available options: {listing}"
        )
