"""Application entry point for the arithmetic captcha reader (FastAPI)."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.logger import init_logging, logger
from services.captcha.errors import EvaluationError, ExtractionError, ImageDecodeError
from services.captcha.solver import CaptchaSolver


class RecognizeRequest(BaseModel):
    image: Optional[str] = None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(solver: Optional[CaptchaSolver] = None) -> FastAPI:
    """Create FastAPI app with health and captcha recognition routes."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        init_logging()
        logger.info("Captcha reader service started on %s:%s", settings.host, settings.port)
        yield

    app = FastAPI(title="Captcha Reader", version="0.1.0", lifespan=lifespan)
    captcha_solver = solver or CaptchaSolver()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "message": "Captcha reader service is running"}

    @app.post("/api/captcha/recognize")
    def recognize(payload: Optional[RecognizeRequest] = None) -> JSONResponse:
        """
        Request body: {"image": "base64 encoded image string"}
        Response: {"result": int, "details": {...}}
        """
        if payload is None or not payload.image:
            return _error("Missing image parameter", 400)
        if len(payload.image) > settings.max_image_bytes:
            return _error("Image payload too large", 413)

        try:
            recognition = captcha_solver.recognize(payload.image)
        except ImageDecodeError as exc:
            logger.warning("Invalid captcha image: %s", exc)
            return _error("Invalid base64 image format", 400)
        except ExtractionError as exc:
            logger.warning("Expression extraction failed: %s", exc)
            return _error("Failed to extract expression from image", 400)
        except EvaluationError as exc:
            logger.warning("Expression evaluation failed: %s", exc)
            return _error(f"Failed to evaluate expression: {exc}", 400)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Captcha recognition failed: %s", exc)
            return _error(f"Internal server error: {exc}", 500)

        return JSONResponse(recognition.to_dict())

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        # A typed-but-wrong "image" field is bad image data; anything else is a bad body
        for error in exc.errors():
            if tuple(error.get("loc", ()))[-1:] == ("image",):
                logger.warning("Invalid image field: %s", error.get("msg"))
                return _error("Invalid base64 image format", 400)
        logger.warning("Invalid request body: %s", exc.errors())
        return _error("Missing image parameter", 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unrouted paths and methods share the catch-all reply
        if exc.status_code in (404, 405):
            return _error("Not found", 404)
        return _error(str(exc.detail), exc.status_code)

    return app


def main() -> None:
    """Start the API server."""
    init_logging()
    logger.info("Starting FastAPI server at %s:%s", settings.host, settings.port)
    logger.info("API endpoint: POST http://%s:%s/api/captcha/recognize", settings.host, settings.port)
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
