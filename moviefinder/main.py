"""
MovieFinder — FastAPI Application

REST + SSE surface over the search pipeline. Each client session is the
presentation sink for its own SearchController.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from sse_starlette.sse import EventSourceResponse

from moviefinder import __version__, clients
from moviefinder.clients import tmdb
from moviefinder.config import settings
from moviefinder.errors import NoMatches, ResolveFailed
from moviefinder.models import (
    SearchOutcome,
    SearchRequest,
    SearchResponse,
    SessionView,
    SortKey,
)
from moviefinder.sessions import (
    cleanup_expired,
    delete_session,
    get_or_create_session,
    get_session,
)
from moviefinder.sorting import sort_movies

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    NoMatches.kind: 404,
    ResolveFailed.kind: 502,
}


# ── Lifespan: startup/shutdown ────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down shared resources."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )
    logger.info("MovieFinder starting up (source=%s)", settings.movie_source)
    logger.info("   TMDB: %s  region: %s", settings.tmdb_base_url, settings.watch_region)
    if settings.movie_source == "generative":
        logger.info("   LLM: %s  model: %s", settings.vllm_base_url, settings.vllm_model)

    yield  # app runs here

    logger.info("MovieFinder shutting down")
    await clients.close_client()
    await tmdb.close_client()


# ── App instance ──────────────────────────────────────────

app = FastAPI(
    title="MovieFinder",
    version=__version__,
    description="Free-text movie search with cast, trailer and streaming details",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    t0 = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - t0) * 1000
    logger.info(
        "%s %s → %d (%.0f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed,
    )
    return response


def _error_response(outcome: SearchOutcome) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS.get(outcome.error_kind, 500),
        content={"kind": outcome.error_kind, "message": outcome.error_message},
    )


# ── Health endpoint ───────────────────────────────────────


@app.get("/api/health")
async def health():
    """Health check — verifies TMDB (and LLM, if used) connectivity."""
    status = {"status": "ok", "source": settings.movie_source, "tmdb": "unknown"}
    try:
        await tmdb.get_configuration()
        status["tmdb"] = "ok"
    except Exception as exc:
        status["tmdb"] = f"error: {exc}"

    ok = status["tmdb"] == "ok"
    if settings.movie_source == "generative":
        try:
            info = await clients.check_llm_health()
            status["llm"] = "ok"
            status["llm_models"] = [m["id"] for m in info.get("data", [])]
        except Exception as exc:
            status["llm"] = f"error: {exc}"
        ok = ok and status["llm"] == "ok"

    status["status"] = "ok" if ok else "degraded"
    return status


# ── Search endpoint ───────────────────────────────────────


@app.post("/api/search", response_model=SearchResponse)
async def search(body: SearchRequest):
    """
    Resolve a free-text query and return enriched movies.

    ``published`` is False when a newer search on the same session
    started before this one finished; its movies were then not kept.
    """
    if not body.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be empty")

    t0 = time.perf_counter()
    session = get_or_create_session(body.session_id)
    controller = session.controller

    outcome = await controller.search(body.query)
    if outcome.error_kind:
        return _error_response(outcome)

    movies = outcome.movies
    if body.sort_by:
        if outcome.published:
            movies = controller.sort(body.sort_by)
        else:
            movies = sort_movies(movies, body.sort_by)

    return SearchResponse(
        session_id=session.session_id,
        generation=outcome.generation,
        published=outcome.published,
        movies=movies,
        processing_time_ms=int((time.perf_counter() - t0) * 1000),
    )


# ── Streaming SSE endpoint ────────────────────────────────


@app.post("/api/search/stream")
async def search_stream(body: SearchRequest):
    """
    Streaming search endpoint (Server-Sent Events).

    Emits a ``status`` event as each phase starts ("resolving", then
    "enriching"), then ``results`` or ``error``, then ``done``.
    """
    if not body.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be empty")

    session = get_or_create_session(body.session_id)
    controller = session.controller

    async def event_generator() -> AsyncIterator[dict]:
        # Phases are queued by the search task; None marks its completion.
        phases: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(controller.search(body.query, on_phase=phases.put_nowait))
        task.add_done_callback(lambda _: phases.put_nowait(None))

        while True:
            phase = await phases.get()
            if phase is None:
                break
            yield {
                "event": "status",
                "data": json.dumps({"phase": phase, "source": controller.source.name}),
            }

        outcome = task.result()

        if outcome.error_kind:
            yield {
                "event": "error",
                "data": json.dumps({"kind": outcome.error_kind, "message": outcome.error_message}),
            }
        else:
            movies = outcome.movies
            if body.sort_by:
                movies = controller.sort(body.sort_by) if outcome.published else sort_movies(movies, body.sort_by)
            yield {
                "event": "results",
                "data": json.dumps(
                    [m.model_dump(by_alias=True) for m in movies],
                    ensure_ascii=False,
                ),
            }

        yield {
            "event": "done",
            "data": json.dumps({
                "session_id": session.session_id,
                "generation": outcome.generation,
                "published": outcome.published,
            }),
        }

    return EventSourceResponse(event_generator())


# ── Session endpoints ─────────────────────────────────────


@app.get("/api/session/{session_id}", response_model=SessionView)
async def get_session_results(session_id: str, sort_by: Optional[SortKey] = None):
    """Currently displayed results for a session, optionally re-sorted."""
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    controller = session.controller
    movies = controller.sort(sort_by) if sort_by else controller.results
    return SessionView(
        session_id=session_id,
        generation=controller.generation,
        movies=movies,
        error=session.last_error,
    )


@app.delete("/api/session/{session_id}")
async def delete_session_endpoint(session_id: str):
    """Delete a search session."""
    if not delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted"}


@app.post("/api/sessions/cleanup")
async def cleanup_sessions():
    """Remove expired sessions."""
    count = cleanup_expired()
    return {"removed": count}


@app.get("/", response_class=HTMLResponse)
async def root():
    """Show API info."""
    return HTMLResponse(
        content="""<!DOCTYPE html>
<html><head><meta charset="utf-8">
<title>MovieFinder API</title>
<style>body{font-family:system-ui;background:#0f172a;color:#e2e8f0;display:flex;
justify-content:center;align-items:center;height:100vh;margin:0}
.card{text-align:center;padding:2rem;border-radius:1rem;background:#1e293b}
a{color:#60a5fa;text-decoration:none}h1{color:#f59e0b}</style></head>
<body><div class="card">
<h1>MovieFinder</h1>
<p>Search movies, see who is in them and where to stream them</p>
<p><a href="/docs">API Docs</a></p>
</div></body></html>"""
    )
