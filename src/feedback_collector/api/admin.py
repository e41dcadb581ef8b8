"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, Response

if TYPE_CHECKING:
    from feedback_collector.containers import AppContainer
    from feedback_collector.domain.feedback import FeedbackRecord

router = APIRouter(prefix="/admin", tags=["admin"])

_CSV_FIELDS = (
    "id",
    "user_id",
    "name",
    "feedback_text",
    "media_ref",
    "media_uri",
    "media_path",
    "media_failed",
    "duration_seconds",
    "created_at",
)


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health(request: Request) -> dict[str, object]:
    """Admin health check with background worker status."""
    container: AppContainer = request.app.state.container
    return {
        "status": "ok",
        "media_pipeline_running": container.media_pipeline.running,
        "session_reaper_running": container.session_reaper.running,
    }


@router.get("/feedback", dependencies=[Depends(require_admin)])
async def list_feedback(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> dict[str, object]:
    """Return collected feedback, newest first."""
    container: AppContainer = request.app.state.container
    records = container.feedback_service.list_feedback(limit=limit, offset=offset)
    return {
        "feedback": [_record_payload(record) for record in records],
        "limit": limit,
        "offset": offset,
    }


@router.get("/feedback/stats", dependencies=[Depends(require_admin)])
async def feedback_stats(request: Request) -> dict[str, object]:
    """Return feedback totals and the live session count."""
    container: AppContainer = request.app.state.container
    active_sessions = await container.session_store.count_active()
    return asdict(container.feedback_service.get_stats(active_sessions))


@router.get("/feedback/users/{user_id}", dependencies=[Depends(require_admin)])
async def user_feedback(user_id: str, request: Request) -> dict[str, object]:
    """Return every record submitted by one user."""
    container: AppContainer = request.app.state.container
    records = container.feedback_service.list_for_user(user_id)
    return {
        "user_id": user_id,
        "feedback": [_record_payload(record) for record in records],
    }


@router.get("/feedback/export", dependencies=[Depends(require_admin)])
async def export_feedback(request: Request) -> Response:
    """Download every record as CSV."""
    container: AppContainer = request.app.state.container
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=_CSV_FIELDS)
    writer.writeheader()
    for record in container.feedback_service.iter_all():
        writer.writerow(_record_payload(record))
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="feedback.csv"'},
    )


@router.get("/feedback/{feedback_id}", dependencies=[Depends(require_admin)])
async def get_feedback(feedback_id: UUID, request: Request) -> dict[str, object]:
    """Return a single record."""
    container: AppContainer = request.app.state.container
    record = container.feedback_service.get_feedback(feedback_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Feedback not found"
        )
    return _record_payload(record)


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return the live session count and sessions awaiting cleanup."""
    container: AppContainer = request.app.state.container
    store = container.session_store
    idle = await store.list_idle_older_than(store.ttl)
    return {
        "active_sessions": await store.count_active(),
        "expired_sessions": [
            {
                "user_id": snapshot.user_id,
                "last_activity_at": snapshot.last_activity_at.isoformat(),
            }
            for snapshot in idle
        ],
    }


@router.post("/sessions/cleanup", dependencies=[Depends(require_admin)])
async def cleanup_sessions(request: Request) -> dict[str, int]:
    """Evict expired sessions now instead of waiting for the next sweep."""
    container: AppContainer = request.app.state.container
    removed = await container.session_reaper.sweep()
    return {"removed": removed}


@router.delete("/media", dependencies=[Depends(require_admin)])
async def delete_media(
    request: Request, path: str = Query(min_length=1)
) -> dict[str, str]:
    """Remove a stored media object by its bucket path."""
    container: AppContainer = request.app.state.container
    container.media_storage.remove(path)
    return {"status": "deleted", "path": path}


@router.get("/ui", response_class=HTMLResponse)
async def admin_ui() -> HTMLResponse:
    """Minimal admin UI that consumes the admin API."""
    return HTMLResponse(_ADMIN_UI_HTML)


def _record_payload(record: FeedbackRecord) -> dict[str, object]:
    return {
        "id": str(record.id),
        "user_id": record.user_id,
        "name": record.name,
        "feedback_text": record.feedback_text,
        "media_ref": record.media_ref,
        "media_uri": record.media_uri,
        "media_path": record.media_path,
        "media_failed": record.media_failed,
        "duration_seconds": record.duration_seconds,
        "created_at": record.created_at.isoformat(),
    }


_ADMIN_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Feedback inbox</title>
    <style>
      body { font-family: system-ui, sans-serif; margin: 2rem; color: #222; }
      header { display: flex; gap: 0.5rem; align-items: center; }
      #stats { margin: 1rem 0; color: #555; }
      table { border-collapse: collapse; width: 100%; }
      th, td { border-bottom: 1px solid #ddd; padding: 0.4rem; text-align: left; }
      td.failed { color: #b00020; }
    </style>
  </head>
  <body>
    <header>
      <input id="token" type="password" placeholder="X-Admin-Token" />
      <button onclick="refresh()">Refresh</button>
      <button onclick="cleanup()">Evict expired sessions</button>
      <button onclick="download()">Export CSV</button>
    </header>
    <p id="stats"></p>
    <table>
      <thead>
        <tr><th>When</th><th>User</th><th>Name</th><th>Feedback</th><th>Media</th></tr>
      </thead>
      <tbody id="rows"></tbody>
    </table>
    <script>
      function call(path, method) {
        const token = document.getElementById('token').value;
        return fetch('/admin' + path, {
          method: method || 'GET',
          headers: { 'X-Admin-Token': token }
        }).then((res) => {
          if (!res.ok) { throw new Error('HTTP ' + res.status); }
          return res;
        });
      }
      function cell(row, text, cls) {
        const td = row.insertCell();
        td.textContent = text == null ? '' : text;
        if (cls) { td.className = cls; }
      }
      async function refresh() {
        const stats = document.getElementById('stats');
        try {
          const s = await (await call('/feedback/stats')).json();
          stats.textContent = s.total_feedback + ' total, ' + s.today_feedback
            + ' today, ' + s.active_sessions + ' conversations open';
          const data = await (await call('/feedback')).json();
          const body = document.getElementById('rows');
          body.innerHTML = '';
          for (const r of data.feedback) {
            const row = body.insertRow();
            cell(row, r.created_at);
            cell(row, r.user_id);
            cell(row, r.name);
            cell(row, r.feedback_text);
            cell(row, r.media_uri, r.media_failed ? 'failed' : '');
          }
        } catch (err) {
          stats.textContent = err.message;
        }
      }
      async function cleanup() {
        const res = await (await call('/sessions/cleanup', 'POST')).json();
        document.getElementById('stats').textContent =
          res.removed + ' expired sessions removed';
      }
      async function download() {
        const blob = await (await call('/feedback/export')).blob();
        const link = document.createElement('a');
        link.href = URL.createObjectURL(blob);
        link.download = 'feedback.csv';
        link.click();
        URL.revokeObjectURL(link.href);
      }
    </script>
  </body>
</html>
"""
