"""
HTTP routes.

GET  /          upload form and check catalog
POST /plan/     multipart "uploadfile" or form field "plantext" -> HTML page
POST /api/plan  JSON {"plan_text": ...} -> JSON plan
"""

from __future__ import annotations

import html
import logging
from typing import Any

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from planchecker.checks.engine import list_checks
from planchecker.config import CheckerConfig
from planchecker.exceptions import PlanCheckerError
from planchecker.output.renderers import explain_to_schema, render_html
from planchecker.parser.parser import parse_plan

logger = logging.getLogger(__name__)

router = APIRouter()


class PlanRequest(BaseModel):
    """Request body for the JSON endpoint."""

    plan_text: str = Field(..., description="EXPLAIN or EXPLAIN ANALYZE text output")


def _templates(request: Request) -> Any:
    return request.app.state.templates


def _config(request: Request) -> CheckerConfig:
    return request.app.state.config


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """Upload form."""
    return _templates(request).TemplateResponse(
        request,
        "index.html",
        {"checks": list_checks()},
    )


@router.post("/plan/", response_class=HTMLResponse)
def plan(
    request: Request,
    uploadfile: UploadFile | None = File(default=None),
    plantext: str = Form(default=""),
) -> HTMLResponse:
    """
    Parse a submitted plan and render it.

    An uploaded file wins over the text area.
    """
    if uploadfile is not None and uploadfile.filename:
        data = uploadfile.file.read()
        plan_text = data.decode("utf-8", errors="replace")
        logger.info("Read %d bytes from file upload %r", len(data), uploadfile.filename)
    else:
        plan_text = plantext

    config = _config(request)
    try:
        explain = parse_plan(plan_text, config)
    except PlanCheckerError as e:
        logger.info("Rejected plan: %s", e.message.splitlines()[0])
        return HTMLResponse(
            f"<pre>{html.escape(e.message)}</pre>",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    return _templates(request).TemplateResponse(
        request,
        "plan.html",
        {"plan_html": render_html(explain, config)},
    )


@router.post("/api/plan", summary="Parse and check an EXPLAIN plan")
def api_plan(request: Request, body: PlanRequest) -> JSONResponse:
    """Parse a plan and return the checked tree as JSON. Nothing is stored."""
    try:
        explain = parse_plan(body.plan_text, _config(request))
    except PlanCheckerError as e:
        return JSONResponse(status_code=422, content=e.to_dict())

    return JSONResponse(content=explain_to_schema(explain).model_dump(mode="json"))
