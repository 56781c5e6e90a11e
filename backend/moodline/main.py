import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from moodline.api.v1.chat import router as chat_router
from moodline.core.config import get_settings
from moodline.services.emotion.service import SessionRegistry

settings = get_settings()

logger = logging.getLogger(__name__)
logging.getLogger("moodline").setLevel(settings.log_level.upper())

app = FastAPI(
    title="Moodline API",
    version="0.4.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
)


@app.on_event("startup")
async def _startup_sessions():
    if getattr(app.state, "sessions", None) is None:
        app.state.sessions = SessionRegistry(settings)
        logger.info("Chat sessions ready (backend=%s)", app.state.sessions.classifier.name)


@app.on_event("shutdown")
async def _shutdown_sessions():
    registry = getattr(app.state, "sessions", None)
    if registry is not None:
        # Let fire-and-forget persistence finish before the loop goes away.
        await registry.close()
        app.state.sessions = None


app.include_router(chat_router, prefix="/api/v1", tags=["chat"])


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health_check():
    return {"status": "ok"}
