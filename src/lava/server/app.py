"""FastAPI application factory.

The app holds one LinkPipeline (``app.state.pipeline``) and a lock that
serializes batches on it. Errors are reported as ``{"error": message}``:
400 for malformed requests, 500 when a batch could not run.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..models.config import LavaConfig
from ..pipeline.base import LinkPipeline
from . import routes


def _describe_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "Invalid request"))
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


def create_app(config: Optional[LavaConfig] = None, pipeline: Optional[LinkPipeline] = None) -> FastAPI:
    """Return a configured FastAPI application.

    Args:
        config: Server defaults (read from the environment if omitted)
        pipeline: Pipeline to serve (built from ``config`` if omitted)
    """
    if pipeline is None:
        pipeline = LinkPipeline(config or LavaConfig.from_env())

    app = FastAPI(
        title="Lava",
        description="Clip web pages into Markdown documents with frontmatter.",
        version=__version__,
    )
    app.state.pipeline = pipeline
    app.state.batch_lock = asyncio.Lock()

    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)  # type: ignore[arg-type]

    app.include_router(routes.router)
    return app
