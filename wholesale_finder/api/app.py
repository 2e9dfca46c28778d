# wholesale_finder/api/app.py

"""FastAPI application exposing search, analysis, translation and rates.

Every response body carries ``success``; failures add an ``error``
message in Korean for display.

Usage:
    python main.py --serve
    # or
    uvicorn wholesale_finder.api.app:create_app --factory --port 8000
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wholesale_finder.api.schemas import (
    AnalyzeRequest,
    SearchRequest,
    TranslateRequest,
)
from wholesale_finder.scrapers.base_scraper import ExtractionFailed
from wholesale_finder.services.health_checker import HealthChecker
from wholesale_finder.services.search_orchestrator import (
    InvalidQueryError,
    SearchOrchestrator,
)

logger = logging.getLogger("wholesale_finder.api")

ANALYZE_FAILED = "상품 정보를 분석할 수 없습니다."
SERVER_ERROR = "서버 오류가 발생했습니다."


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "잘못된 요청입니다."
    first = errors[0]
    location = ".".join(
        str(part) for part in first.get("loc", ()) if part != "body"
    )
    detail = first.get("msg", "invalid value")
    return f"잘못된 요청입니다: {location} {detail}".strip()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _failure(400, _validation_message(exc))

    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(
        request: Request, exc: InvalidQueryError
    ) -> JSONResponse:
        return _failure(400, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message = str(exc.detail)
        if exc.status_code == 405:
            message = "Method not allowed"
        return _failure(exc.status_code, message)

    @app.exception_handler(ExtractionFailed)
    async def extraction_handler(
        request: Request, exc: ExtractionFailed
    ) -> JSONResponse:
        logger.error("Analyze failed: %s", exc)
        return _failure(500, ANALYZE_FAILED)

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return _failure(500, SERVER_ERROR)


def create_app(orchestrator: SearchOrchestrator | None = None) -> FastAPI:
    """Build the application around one shared orchestrator."""
    app = FastAPI(title="wholesale_finder", version="1.0.0")
    app.state.orchestrator = orchestrator or SearchOrchestrator()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    def _orchestrator(request: Request) -> SearchOrchestrator:
        orch: SearchOrchestrator = request.app.state.orchestrator
        return orch

    @app.post("/search")
    async def search(body: SearchRequest, request: Request) -> dict[str, Any]:
        result = await _orchestrator(request).search_all(
            body.keyword, use_vpn=body.use_vpn
        )
        return {
            "success": True,
            "data": result.to_dict(),
            "vpnMode": result.vpn_mode,
        }

    @app.post("/analyze-url")
    async def analyze_url(
        body: AnalyzeRequest, request: Request
    ) -> dict[str, Any]:
        analysis = await _orchestrator(request).analyze_url(body.url)
        return {"success": True, "data": analysis.to_dict()}

    @app.post("/translate")
    async def translate(
        body: TranslateRequest, request: Request
    ) -> dict[str, Any]:
        if not body.text.strip():
            raise InvalidQueryError("번역할 텍스트를 입력해주세요.")
        translated = await _orchestrator(request).translate(
            body.text, body.target_language
        )
        return {"success": True, "translatedText": translated}

    @app.get("/exchange-rate")
    async def exchange_rate(request: Request) -> dict[str, Any]:
        converter = _orchestrator(request).converter
        rates = await converter.rates()
        data = rates.to_dict(converter.local_currency)
        data["formatted"] = rates.formatted(converter.local_currency)
        return {"success": True, "data": data}

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        checker = HealthChecker(fetcher=_orchestrator(request).fetcher)
        results = await checker.check_all()
        return {"success": True, "data": [r.to_dict() for r in results]}

    return app
