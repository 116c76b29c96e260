"""
FastAPI application for the image generation gateway.

Accepts prompts plus a target provider, forwards them to the provider
adapters and answers with base64-encoded images. Every failure leaves
the API as {"error": "<message>"}.
"""
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.config import Settings, load_settings
from image.base import Provider
from image.errors import GenerationError
from image.factory import ProviderDispatcher
from image.router import router as image_router

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "Invalid request - " + "; ".join(parts) if parts else "Invalid request"


def register_error_handlers(app: FastAPI):
    @app.exception_handler(GenerationError)
    async def generation_error_handler(request: Request, exc: GenerationError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        # Full traceback goes to the log only, never to the client
        logger.error(f"Unexpected error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Explicit configuration; loaded from the environment if omitted

    Returns:
        FastAPI: The configured application
    """
    if settings is None:
        settings = load_settings()
    # No-op when the root logger is already configured
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Image Generation Gateway")
    app.state.settings = settings
    app.state.dispatcher = ProviderDispatcher(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(image_router)

    # Optional static frontend
    if settings.frontend_dir is not None:
        if settings.frontend_dir.is_dir():
            app.mount("/static", StaticFiles(directory=str(settings.frontend_dir)), name="static")
        else:
            logger.warning(f"FRONTEND_DIR {settings.frontend_dir} does not exist - not serving static files")

    @app.get("/", response_class=PlainTextResponse)
    async def index():
        return "Image generation gateway is running"

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "providers": {
                p.value: bool(settings.credential_for(p.value))
                for p in Provider
            },
        }

    return app


def main():
    """Run the gateway with uvicorn (equivalent: uvicorn app.main:create_app --factory)."""
    import uvicorn

    settings = load_settings()
    app = create_app(settings)
    logger.info(f"Starting gateway on port {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
