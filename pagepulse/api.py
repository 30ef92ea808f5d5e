"""
HTTP surface for published landing pages: the AI proxy endpoints and click tracking.

Run with: uvicorn pagepulse.api:app
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pagepulse import ai_engine, analytics
from pagepulse.ai_engine import AIServiceError
from pagepulse.log import setup_logging

load_dotenv()

logger = logging.getLogger(__name__)


class MarketingRequest(BaseModel):
    landingPageUrl: Optional[str] = None
    audienceType: Optional[str] = None
    industry: Optional[str] = None
    tone: Optional[str] = None


class ContentRequest(BaseModel):
    prompt: Optional[str] = None
    mode: Optional[str] = None


class ClickRequest(BaseModel):
    pageId: str
    x: float
    y: float
    deviceType: str = "desktop"


def _error(status_code, message):
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging()
        logger.info("PagePulse API starting")
        yield
        logger.info("PagePulse API shutting down")

    app = FastAPI(
        title="PagePulse API",
        description="AI marketing proxy and click tracking for published landing pages",
        lifespan=lifespan,
    )

    # Answers OPTIONS preflight for every route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body")

    @app.exception_handler(ValueError)
    async def bad_input(request: Request, exc: ValueError):
        return _error(400, str(exc))

    @app.exception_handler(AIServiceError)
    async def upstream_failure(request: Request, exc: AIServiceError):
        logger.error("AI service error on %s: %s", request.url.path, exc)
        return _error(502, str(exc))

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, str(exc))

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.post("/generate-ai-marketing")
    def generate_ai_marketing(body: MarketingRequest):
        result = ai_engine.generate_marketing_optimizations(
            body.landingPageUrl,
            audience_type=body.audienceType,
            industry=body.industry,
            tone=body.tone,
        )
        return {"result": result}

    @app.post("/generate-ai-content")
    def generate_ai_content(body: ContentRequest):
        content = ai_engine.generate_ai_content(body.prompt, mode=body.mode)
        if body.mode == "landing_page_content":
            return {"content": content}
        return {"result": content}

    @app.post("/track-click", status_code=201)
    def track_click(body: ClickRequest):
        analytics.record_click(body.pageId, body.x, body.y, body.deviceType)
        return {"success": True}

    return app


app = create_app()
