import logging
import os

from alembic import command
from alembic.config import Config
from fastapi import FastAPI

from relay import __version__
from relay.admin import router as admin_router
from relay.completion import CompletionClient
from relay.config import Settings, load_settings
from relay.conversations import ConversationLog
from relay.db import init_db, make_engine, make_session_factory
from relay.delivery import DeliveryClient
from relay.directory import TenantDirectory
from relay.pipeline import RelayPipeline
from relay.webhook import router as webhook_router

logger = logging.getLogger(__name__)

HERE = os.path.dirname(__file__)


def run_migrations(database_url: str):
    alembic_cfg = Config(os.path.join(HERE, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(HERE, "migrations"))
    # configparser interpolation: escape % in passwords
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    # logging is already set up, keep alembic's fileConfig out of it
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


def create_app(
    settings: Settings | None = None,
    *,
    completion: CompletionClient | None = None,
    delivery: DeliveryClient | None = None,
) -> FastAPI:
    """
    Wire settings, storage, provider clients and routes into one app.

    Without explicit settings they are loaded from the environment, which
    raises ConfigurationError when WHATSAPP_VERIFY_TOKEN is missing. The
    completion client is only built when OPENAI_API_KEY is set.
    """
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = make_engine(settings)
    session_factory = make_session_factory(engine)
    directory = TenantDirectory(session_factory)
    conversation_log = ConversationLog(session_factory)

    if completion is None and settings.completion_enabled:
        completion = CompletionClient(settings.openai_api_key, model=settings.openai_model)
    if delivery is None:
        delivery = DeliveryClient(settings.graph_api_url)

    app = FastAPI(title="WhatsApp AI Relay", version=__version__)
    app.state.settings = settings
    app.state.directory = directory
    app.state.conversation_log = conversation_log
    app.state.pipeline = RelayPipeline(
        settings, directory, conversation_log, completion, delivery
    )

    @app.on_event("startup")
    def startup():
        if settings.auto_migrate:
            logger.info("STARTUP: running Alembic migrations")
            run_migrations(settings.database_url)
            logger.info("STARTUP: migrations complete")
        else:
            init_db(engine)

    @app.on_event("shutdown")
    async def shutdown():
        await delivery.aclose()
        if completion is not None:
            await completion.aclose()
        engine.dispose()

    # --- Health check ---
    @app.get("/health", include_in_schema=False)
    @app.head("/health", include_in_schema=False)
    async def health():
        return {"ok": True}

    app.include_router(webhook_router)
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])
    return app


def run():
    """Console entry point: serve the relay with uvicorn."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
