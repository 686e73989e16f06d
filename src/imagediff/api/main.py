"""imagediff - FastAPI application.

This module defines the FastAPI ``app`` instance, its routes, and the
``main()`` CLI function that serves it with uvicorn on a Unix domain socket.

Endpoints
---------
========  ==============  ==============================================
Method    Path            Purpose
========  ==============  ==============================================
GET       ``/diff``       Reconstructed Dockerfiles of two local images
GET       ``/health``     Liveness probe
========  ==============  ==============================================

``GET /diff?image1=alpine:3.18&image2=alpine:3.19`` runs ``slim xray`` for
both images concurrently and answers::

    {
      "image1": {"name": "alpine:3.18", "dockerfile": "FROM ...\\n..."},
      "image2": {"name": "alpine:3.19", "dockerfile": "FROM ...\\n..."}
    }

If either analysis fails the response is HTTP 502 and the ``detail`` lists
the failed images.  Failures never affect other requests or the server.

Usage
-----
CLI (installed entry point)::

    imagediff --socket /run/guest-services/backend.sock

Direct invocation::

    python -m imagediff.api.main
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from imagediff import __version__
from imagediff.api.models import DiffErrorResponse, DiffResponse
from imagediff.core.artifacts import ArtifactManager
from imagediff.core.config import ImageDiffConfig, config
from imagediff.core.differ import diff_images
from imagediff.core.errors import DiffFailed
from imagediff.core.logs import configure_logging, request_logger

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("imagediff.access")

# Seconds between client-disconnect checks while a diff is running.
DISCONNECT_POLL_INTERVAL = 0.5


def get_config() -> ImageDiffConfig:
    """Return the active configuration (overridden in tests)."""
    return config


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup and shutdown of the service."""
    settings = app.dependency_overrides.get(get_config, get_config)()
    logger.info(f"imagediff {__version__} starting (analyzer: {settings.analyzer_binary})")

    yield  # Application runs here.

    logger.info("imagediff shutting down")


app = FastAPI(
    title="imagediff",
    description="Compare reconstructed Dockerfiles of two local container images.",
    version=__version__,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Access log and error handling.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def access_log(request: Request, call_next):
    """Assign a request id and write one JSON access-log line per request."""
    request.state.request_id = uuid.uuid4().hex[:8]
    request.state.error = ""
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        request.state.error = request.state.error or f"{type(e).__name__}: {e}"
        _write_access_line(request, 500, started)
        raise

    _write_access_line(request, response.status_code, started)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


def _write_access_line(request: Request, status: int, started: float) -> None:
    access_logger.info(
        json.dumps(
            {
                "time": datetime.now(timezone.utc).isoformat(),
                "id": request.state.request_id,
                "method": request.method,
                "uri": str(request.url.path)
                + (f"?{request.url.query}" if request.url.query else ""),
                "status": status,
                "error": request.state.error,
                "latency_ms": round((time.perf_counter() - started) * 1000, 1),
            }
        )
    )


@app.exception_handler(DiffFailed)
async def diff_failed_handler(request: Request, exc: DiffFailed) -> JSONResponse:
    """Report failed fetches as HTTP 502 with per-image details."""
    request.state.error = str(exc)
    body = DiffErrorResponse.from_exception(exc)
    return JSONResponse(status_code=502, content=body.model_dump())


async def _run_until_disconnect(request: Request, coro):
    """Await ``coro``, cancelling it if the client disconnects first.

    Cancelling the diff cancels both fetches, which kill their analyzer
    processes and remove their report artifacts.
    """
    task = asyncio.create_task(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"Client disconnected, cancelling request {request.state.request_id}")
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
                request.state.error = "client disconnected"
                raise HTTPException(status_code=499, detail="Client closed request")
    finally:
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get(
    "/diff",
    response_model=DiffResponse,
    responses={502: {"model": DiffErrorResponse, "description": "Analysis of an image failed"}},
)
async def diff(
    request: Request,
    image1: str = Query(..., min_length=1, description="First local image, e.g. 'alpine:3.18'."),
    image2: str = Query(..., min_length=1, description="Second local image, e.g. 'alpine:3.19'."),
    settings: ImageDiffConfig = Depends(get_config),
) -> DiffResponse:
    """Reconstruct and return the Dockerfiles of two local images.

    Both images are analyzed concurrently.  ``image1`` in the response is
    always the ``image1`` query parameter, whichever analysis finishes first.

    Args:
        request: Incoming request (for the request id and disconnects).
        image1: First image identifier.
        image2: Second image identifier.
        settings: Active configuration.

    Returns:
        Both images with their reconstructed Dockerfiles.

    Raises:
        DiffFailed: Rendered as HTTP 502 by :func:`diff_failed_handler`.
    """
    log = request_logger(__name__, request.state.request_id)
    artifacts = ArtifactManager(settings.report_dir, settings.report_suffix)
    result = await _run_until_disconnect(
        request,
        diff_images(image1, image2, config=settings, artifacts=artifacts, log=log),
    )
    return DiffResponse.from_result(result)


@app.get("/health")
async def health() -> dict:
    """Return service liveness and version."""
    return {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def remove_stale_socket(socket_path: Path) -> None:
    """Delete a socket file left behind by a previous run."""
    if socket_path.exists() or socket_path.is_symlink():
        logger.info(f"Removing stale socket {socket_path}")
        socket_path.unlink()


def main(argv: list[str] | None = None) -> None:
    """Serve the API on a Unix domain socket with uvicorn.

    The socket path comes from ``--socket`` or ``IMAGEDIFF_SOCKET_PATH``
    (default ``/run/guest-services/backend.sock``).

    This function is registered as the ``imagediff`` console script in
    ``pyproject.toml``.
    """
    parser = argparse.ArgumentParser(description="Serve the imagediff API.")
    parser.add_argument(
        "--socket",
        type=Path,
        default=config.socket_path,
        help="Unix domain socket to listen on",
    )
    args = parser.parse_args(argv)

    configure_logging(config.log_level)
    remove_stale_socket(args.socket)

    logger.info(f"Starting listening on {args.socket}")

    import uvicorn

    uvicorn.run(
        app,
        uds=str(args.socket),
        log_level=config.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
