"""Clipping endpoints.

Routes
------
GET  /      Plain-text usage banner
POST /api   Body: {"links": [...], "returnFormat"?, "parser"?, "saveToDisk"?}
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models.config import ReturnFormat, Strategy
from ..pipeline.base import LinkPipeline

logger = logging.getLogger(__name__)

router = APIRouter()

USAGE = (
    "Lava Server - POST /api with "
    '{ "links": [...], "returnFormat"?: "md" | "json", '
    '"parser"?: "render" | "fetch", "saveToDisk"?: boolean }'
)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ClipRequest(BaseModel):
    """Batch request. Omitted options fall back to the server configuration."""

    links: list[str]
    return_format: Optional[ReturnFormat] = Field(
        None, validation_alias=AliasChoices("returnFormat", "return_format")
    )
    strategy: Optional[Strategy] = Field(None, validation_alias=AliasChoices("parser", "strategy"))
    save_to_disk: Optional[bool] = Field(None, validation_alias=AliasChoices("saveToDisk", "save_to_disk"))

    @field_validator("return_format", mode="before")
    @classmethod
    def _parse_return_format(cls, value: object) -> Optional[ReturnFormat]:
        return None if value is None else ReturnFormat.parse(value)

    @field_validator("strategy", mode="before")
    @classmethod
    def _parse_strategy(cls, value: object) -> Optional[Strategy]:
        return None if value is None else Strategy.parse(value)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_class=PlainTextResponse)
async def usage() -> str:
    return USAGE


@router.post("/api")
async def clip_links(body: ClipRequest, request: Request) -> Response:
    """Clip a batch of links.

    A single link in markdown mode comes back as raw ``text/markdown``;
    everything else is a JSON array. More than one link always gets the
    structured shape, whatever was requested.
    """
    pipeline: LinkPipeline = request.app.state.pipeline

    return_format = body.return_format or pipeline.config.return_format
    if len(body.links) > 1:
        return_format = ReturnFormat.STRUCTURED

    # One batch at a time per pipeline
    async with request.app.state.batch_lock:
        try:
            result = await pipeline.process_links(
                body.links,
                return_format=return_format,
                strategy=body.strategy,
                save_to_disk=body.save_to_disk,
            )
        except Exception as exc:
            logger.error(f"API Error: {exc}")
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    if return_format == ReturnFormat.MARKDOWN and len(body.links) == 1:
        return Response(content=result.markdown[0], media_type="text/markdown")
    return JSONResponse(content=result.payload())
