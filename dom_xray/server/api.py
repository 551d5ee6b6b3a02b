from __future__ import annotations

import io
from datetime import datetime
from typing import List, Literal
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..explorer.host import TreeUnavailableError
from ..models import ExplorationRun, RunLog, get_db, init_db
from ..orchestrator import run_exploration_async
from ..storage.base import StorageBackend
from ..storage.minio_store import get_storage

app = FastAPI()


@app.on_event("startup")
def _create_tables() -> None:
    init_db()


class ExploreRequest(BaseModel):
    url: str
    mode: Literal["main", "combo"] = "main"


class RunSummary(BaseModel):
    id: str
    url: str
    mode: str
    run_id: str
    status: str
    status_reason: str | None
    started_at: datetime
    finished_at: datetime | None
    iterations: int | None
    record_count: int | None
    combo_count: int | None
    frontier_remaining: int | None
    artifact_key: str | None


class RunLogEntry(BaseModel):
    timestamp: datetime
    level: str
    message: str


def _summary(run: ExplorationRun) -> RunSummary:
    return RunSummary(
        id=str(run.id),
        url=run.url,
        mode=run.mode,
        run_id=run.run_id,
        status=run.status,
        status_reason=run.status_reason,
        started_at=run.started_at,
        finished_at=run.finished_at,
        iterations=run.iterations,
        record_count=run.record_count,
        combo_count=run.combo_count,
        frontier_remaining=run.frontier_remaining,
        artifact_key=run.artifact_key,
    )


def _get_run(db: Session, run_id: UUID) -> ExplorationRun:
    run = db.get(ExplorationRun, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


@app.post("/api/explore", response_model=RunSummary)
async def start_exploration(payload: ExploreRequest):
    try:
        run, _ = await run_exploration_async(payload.url, payload.mode)
    except (ValueError, TreeUnavailableError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _summary(run)


@app.get("/api/runs", response_model=List[RunSummary])
def list_runs(db: Session = Depends(get_db)):
    runs = db.query(ExplorationRun).order_by(ExplorationRun.started_at.desc()).limit(50).all()
    return [_summary(run) for run in runs]


@app.get("/api/runs/{run_id}", response_model=RunSummary)
def get_run(run_id: UUID, db: Session = Depends(get_db)):
    return _summary(_get_run(db, run_id))


@app.get("/api/runs/{run_id}/logs", response_model=List[RunLogEntry])
def list_run_logs(run_id: UUID, db: Session = Depends(get_db)):
    _get_run(db, run_id)
    logs = db.query(RunLog).filter(RunLog.run_id == run_id).order_by(RunLog.created_at.asc()).all()
    return [RunLogEntry(timestamp=log.created_at, level=log.level, message=log.message) for log in logs]


@app.get("/api/runs/{run_id}/artifact")
def get_artifact(
    run_id: UUID,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> StreamingResponse:
    run = _get_run(db, run_id)
    if not run.artifact_key:
        raise HTTPException(status_code=404, detail="Run has no exported artifact")
    try:
        data = storage.get_bytes(run.artifact_key)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Artifact missing from storage") from exc
    return StreamingResponse(io.BytesIO(data), media_type="application/json")
