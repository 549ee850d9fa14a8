from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from backoffice.client import ApiSubmitter
from backoffice.config import configure_logging
from backoffice.engine import FormSession, Submitter
from backoffice.entities import EntitySchema, available_entities, get_entity
from backoffice.gate import CloseChoice, CloseGate
from backoffice.notifications import ToastSink
from backoffice.state import Mode
from backoffice.storage import DraftStore

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Back-office forms")


@dataclass
class _Entry:
    session: FormSession
    gate: CloseGate
    sink: ToastSink


_sessions: dict[str, _Entry] = {}


class StartRequest(BaseModel):
    mode: Mode = "add"
    existing: Optional[dict[str, Any]] = None
    slug: Optional[str] = None
    owner: Optional[str] = None


class FieldRequest(BaseModel):
    path: str
    value: Any = None


class NavigateRequest(BaseModel):
    action: Literal["next", "prev", "goto"]
    index: Optional[int] = None


class DraftRequest(BaseModel):
    action: Literal["restore", "discard"]


class CloseRequest(BaseModel):
    choice: CloseChoice


def submitter_for(schema: EntitySchema, mode: Mode, slug: str | None) -> Submitter:
    return ApiSubmitter(schema, mode, slug)


def _schema(entity: str) -> EntitySchema:
    try:
        return get_entity(entity)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _entry(session_id: str) -> _Entry:
    entry = _sessions.get(session_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return entry


def _respond(session_id: str, entry: _Entry, **extra: Any) -> dict[str, Any]:
    body = {
        "session_id": session_id,
        "state": entry.session.snapshot(),
        "toasts": [t.model_dump() for t in entry.sink.drain()],
    }
    body.update(extra)
    return body


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/entities")
def entities() -> dict[str, Any]:
    return {"entities": available_entities()}


@app.get("/entities/{entity}")
def entity(entity: str) -> dict[str, Any]:
    return _schema(entity).describe()


@app.post("/entities/{entity}/sessions")
def start(entity: str, req: StartRequest) -> dict[str, Any]:
    schema = _schema(entity)
    if req.mode == "edit" and req.existing is None:
        raise HTTPException(status_code=400, detail="existing is required for edit mode")

    slug = req.slug
    if req.mode == "edit" and not slug:
        slug = (req.existing or {}).get("slug")
    try:
        submitter = submitter_for(schema, req.mode, slug)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    session_id = str(uuid.uuid4())
    sink = ToastSink()
    session = FormSession(schema, DraftStore.for_entity(schema, req.owner), submitter, notifier=sink)
    gate = CloseGate(session, on_close=lambda: _sessions.pop(session_id, None))
    session.initialize(req.mode, req.existing)

    entry = _Entry(session=session, gate=gate, sink=sink)
    _sessions[session_id] = entry
    logger.info("Started %s %s session %s", req.mode, entity, session_id)
    return _respond(session_id, entry)


@app.get("/sessions/{session_id}")
def session_state(session_id: str) -> dict[str, Any]:
    return _respond(session_id, _entry(session_id))


# async so the auto-save timer is scheduled on the server loop
@app.post("/sessions/{session_id}/fields")
async def set_field(session_id: str, req: FieldRequest) -> dict[str, Any]:
    entry = _entry(session_id)
    if not req.path.strip():
        raise HTTPException(status_code=400, detail="path is required")
    try:
        entry.session.set_field(req.path.strip(), req.value)
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _respond(session_id, entry)


@app.post("/sessions/{session_id}/navigate")
def navigate(session_id: str, req: NavigateRequest) -> dict[str, Any]:
    entry = _entry(session_id)
    session = entry.session
    if req.action == "next":
        session.next_step()
    elif req.action == "prev":
        session.prev_step()
    else:
        if req.index is None:
            raise HTTPException(status_code=400, detail="index is required for goto")
        session.go_to_step(req.index)
    return _respond(session_id, entry)


@app.post("/sessions/{session_id}/draft")
def draft(session_id: str, req: DraftRequest) -> dict[str, Any]:
    entry = _entry(session_id)
    try:
        if req.action == "restore":
            entry.session.restore_draft()
        else:
            entry.session.discard_draft()
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _respond(session_id, entry)


@app.post("/sessions/{session_id}/submit")
async def submit(session_id: str) -> dict[str, Any]:
    entry = _entry(session_id)
    try:
        ok = await entry.session.submit()
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _respond(session_id, entry, submitted=ok)


@app.post("/sessions/{session_id}/reset")
def reset(session_id: str) -> dict[str, Any]:
    entry = _entry(session_id)
    try:
        entry.session.reset_form()
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _respond(session_id, entry)


@app.post("/sessions/{session_id}/close")
def request_close(session_id: str) -> dict[str, Any]:
    entry = _entry(session_id)
    prompt = entry.gate.request_close()
    return _respond(session_id, entry, prompt=prompt.model_dump(mode="json") if prompt else None)


@app.post("/sessions/{session_id}/close/resolve")
def resolve_close(session_id: str, req: CloseRequest) -> dict[str, Any]:
    entry = _entry(session_id)
    try:
        closed = entry.gate.resolve(req.choice)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _respond(session_id, entry, closed=closed)
