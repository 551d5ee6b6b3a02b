from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from .browser import BrowserSession
from .config import Settings, settings as default_settings
from .dom.html_loader import load_html_file
from .explorer.combo import ComboEnumerator
from .explorer.host import HostTree
from .explorer.loop import explore
from .explorer.memory_host import MemoryHost
from .explorer.serializer import export_payload
from .models import ExplorationRun, SessionLocal, log_run_event
from .storage.base import StorageBackend
from .storage.minio_store import get_storage

MODES = ("main", "combo")

_run_lock: asyncio.Lock | None = None
_run_lock_loop: asyncio.AbstractEventLoop | None = None


def _get_run_lock() -> asyncio.Lock:
    """Serialize exploration runs on the running loop.

    Every live run opens the same persistent browser profile, which Chromium
    refuses to share between contexts. asyncio locks are bound to one loop, so
    each ``asyncio.run`` from the CLI gets a fresh one.
    """
    global _run_lock, _run_lock_loop

    loop = asyncio.get_running_loop()
    if _run_lock_loop is not loop:
        _run_lock, _run_lock_loop = asyncio.Lock(), loop
    return _run_lock


@dataclass
class ModeResult:
    payload: Any
    iterations: Optional[int] = None
    record_count: Optional[int] = None
    combo_count: Optional[int] = None
    frontier_remaining: Optional[int] = None
    warnings: tuple[str, ...] = ()


async def run_mode(host: HostTree, mode: str, settings: Settings) -> ModeResult:
    if mode == "main":
        report = await explore(host, settings)
        return ModeResult(
            payload=report.to_payload(),
            iterations=report.iterations,
            record_count=len(report.records),
            frontier_remaining=report.frontier_remaining,
        )
    if mode == "combo":
        combo_report = await ComboEnumerator(host, settings).run()
        return ModeResult(
            payload=combo_report.to_payload(),
            combo_count=combo_report.result_count,
            warnings=tuple(combo_report.warnings),
        )
    raise ValueError(f"unknown mode {mode!r}; expected one of {MODES}")


def _start_run(db: Session, url: str, mode: str) -> ExplorationRun:
    run = ExplorationRun(
        url=url,
        mode=mode,
        run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        status="running",
        started_at=datetime.now(timezone.utc),
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def _finish_run(db: Session, run: ExplorationRun, status: str, reason: str | None = None) -> None:
    run.status = status
    run.status_reason = reason
    run.finished_at = datetime.now(timezone.utc)
    db.add(run)
    db.commit()


def _artifact_prefix(url: str, run: ExplorationRun) -> str:
    host = urlparse(url).hostname or "local"
    return f"{host}/{run.mode}/{run.run_id}"


async def run_exploration_async(
    url: str,
    mode: str = "main",
    settings: Settings | None = None,
    html_path: str | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
    storage: StorageBackend | None = None,
    browser_factory: Callable[[Settings], BrowserSession] = BrowserSession,
) -> tuple[ExplorationRun, Any]:
    """Explore one page (live, or an HTML file offline) and record the run."""

    settings = settings or default_settings
    if mode not in MODES:
        raise ValueError(f"unknown mode {mode!r}; expected one of {MODES}")
    if not url and not html_path:
        raise ValueError("a url or an html file is required")

    run_lock = _get_run_lock()

    async with run_lock:
        db = session_factory()
        try:
            run = _start_run(db, url or str(html_path), mode)
            log_run_event(db, run, "info", f"Exploration started mode={mode}")
            try:
                if html_path:
                    document = load_html_file(html_path, url or None)
                    result = await run_mode(MemoryHost(document), mode, settings)
                else:
                    async with browser_factory(settings) as browser:
                        await browser.goto(url)
                        result = await run_mode(browser.host(), mode, settings)
            except Exception as exc:
                logging.exception("exploration_failed url=%s mode=%s", url, mode)
                log_run_event(db, run, "error", f"Exploration failed: {exc}")
                _finish_run(db, run, "failed", reason=str(exc))
                raise

            run.iterations = result.iterations
            run.record_count = result.record_count
            run.combo_count = result.combo_count
            run.frontier_remaining = result.frontier_remaining
            for warning in result.warnings:
                log_run_event(db, run, "warning", warning)
            if result.frontier_remaining:
                log_run_event(
                    db,
                    run,
                    "warning",
                    f"Iteration budget exhausted with {result.frontier_remaining} triggers still queued",
                )

            if settings.persist_output:
                filename = settings.output_filename if mode == "main" else settings.combo_output_filename
                storage = storage or get_storage()
                run.artifact_key = export_payload(
                    result.payload, filename, storage, prefix=_artifact_prefix(url, run)
                )
                log_run_event(db, run, "info", f"Exported artifact key={run.artifact_key}")

            _finish_run(db, run, "finished")
            return run, result.payload
        finally:
            db.close()


def run_exploration_blocking(url: str, mode: str = "main", **kwargs: Any) -> tuple[ExplorationRun, Any]:
    """Synchronous wrapper for CLI usage."""

    return asyncio.run(run_exploration_async(url, mode, **kwargs))
