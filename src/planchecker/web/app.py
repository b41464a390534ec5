"""
FastAPI application factory for the plan checker web service.

The service is stateless: every request parses one plan and renders it.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from planchecker import __version__
from planchecker.config import CheckerConfig, get_config
from planchecker.web.routes import router

TEMPLATES_DIR = Path(__file__).parent / "templates"


def create_app(config: CheckerConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Checker configuration (uses PLANCHECKER_* env vars if None).

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="Plan Checker",
        description="Greenplum EXPLAIN plan checker.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
    )

    app.state.config = config or get_config()
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    app.include_router(router)

    return app
