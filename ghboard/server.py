"""
server — FastAPI webhook receiver for board automation.

GitHub posts repository events to /webhook; each one runs through the same
automation the `apply-event` command uses inside Actions. Dependencies
(fastapi, uvicorn) are imported lazily so the command-line helpers load
without them.
"""

import hashlib
import hmac
import json
import logging

from .automation import apply_event
from .config import load_settings
from .errors import ConfigError, GhboardError, ProjectNotFound
from .events import load_event
from .project import Board
from .sitemeta import LINKS, SITE_CONFIG

log = logging.getLogger(__name__)


def verify_signature(secret, body, signature):
    """Check an X-Hub-Signature-256 header against the raw request body."""
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature[len("sha256="):])


def create_app(settings=None):
    """Build the FastAPI app.  Imported lazily so fastapi stays optional."""
    from fastapi import FastAPI, HTTPException, Request
    from fastapi.concurrency import run_in_threadpool

    settings = settings or load_settings()
    app = FastAPI(title="Board automation")

    def _board():
        return Board(settings)

    # ── Routes ────────────────────────────────────────────────────────────

    @app.post("/webhook")
    async def webhook(request: Request):
        body = await request.body()
        if settings.webhook_secret:
            signature = request.headers.get("X-Hub-Signature-256")
            if not verify_signature(settings.webhook_secret, body, signature):
                raise HTTPException(401, "Invalid webhook signature")

        name = request.headers.get("X-GitHub-Event", "")
        if name == "ping":
            return {"ok": True}
        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            raise HTTPException(400, "Body is not JSON") from None
        if not isinstance(payload, dict):
            raise HTTPException(400, "Body must be a JSON object")

        try:
            event = load_event(name, payload)
            # apply_event blocks on gh subprocesses.
            transitions = await run_in_threadpool(apply_event, event, _board(), settings)
        except ConfigError as exc:
            raise HTTPException(500, str(exc)) from exc
        except GhboardError as exc:
            raise HTTPException(422, str(exc)) from exc

        log.info("%s/%s: %d transition(s)", name, event.action, len(transitions))
        return {
            "ok": all(t.ok for t in transitions),
            "event": name,
            "action": event.action,
            "transitions": [t.to_dict() for t in transitions],
        }

    @app.get("/api/project")
    def get_project():
        try:
            project = _board().project
        except ProjectNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        except GhboardError as exc:
            raise HTTPException(500, str(exc)) from exc
        return {
            "id": project.id,
            "owner": project.owner,
            "number": project.number,
            "status_field_id": project.status_field_id,
            "statuses": list(project.options),
        }

    @app.get("/api/site")
    def get_site():
        return {"site": SITE_CONFIG, "links": LINKS}

    return app


# ═════════════════════════════════════════════════════════════════════════════
# LAUNCHER
# ═════════════════════════════════════════════════════════════════════════════

def start(port: int = 3333, host: str = "127.0.0.1", settings=None):
    """Start the webhook server."""
    import uvicorn

    app = create_app(settings)

    print(f"\n  🔔 Webhook receiver → http://{host}:{port}/webhook")
    print(f"  Press Ctrl+C to stop\n")
    uvicorn.run(app, host=host, port=port, log_level="warning")
