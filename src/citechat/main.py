import logging

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from citechat.api import topics as topics_api
from citechat.config import Settings
from citechat.errors import ConfigurationError
from citechat.logging_config import configure_logging
from citechat.providers.gemini import GeminiEndpoint
from citechat.services.sessions import SessionManager
from citechat.store import FileKeyValueBackend, TopicStore

configure_logging(Settings.from_env().log_dir)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="CiteChat API")
app.include_router(topics_api.router)


def build_session_manager(settings: Settings) -> SessionManager:
    """Wire the Gemini endpoint and file-backed store; needs an API key."""

    endpoint = GeminiEndpoint.from_settings(settings)
    store = TopicStore(FileKeyValueBackend(settings.data_dir))
    return SessionManager(endpoint=endpoint, store=store, topics=settings.topics)


@app.on_event("startup")
async def _startup_session_manager() -> None:
    """Build the session manager and rehydrate persisted topics."""

    settings = Settings.from_env()
    try:
        manager = build_session_manager(settings)
    except ConfigurationError as exc:
        LOGGER.error("Topic operations disabled: %s", exc)
        topics_api.configure(error=exc)
        return

    topics_api.configure(manager)
    loaded = await manager.rehydrate_all()
    LOGGER.info("Rehydrated %d topic(s)", len(loaded))


@app.on_event("shutdown")
async def _shutdown_session_manager() -> None:
    """Close sessions and delete every viewable resource file."""

    manager = topics_api.current_manager()
    if manager is not None:
        await manager.shutdown()
    topics_api.configure()


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe; fails while the API key is missing."""
    error = topics_api.configuration_error()
    if error is not None:
        raise HTTPException(status_code=503, detail=str(error))
    return "ok"
