# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillhire.api.routes.health import router as health_router
from skillhire.config import build_sqlalchemy_db_url, is_llm_configured, settings
from skillhire.database import Base, engine
from skillhire.logging_config import configure_logging
from skillhire.routers import applications, jobs, profiles, quizzes, skills, storage
import skillhire.models  # noqa: F401  # register every model on Base.metadata


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not is_llm_configured(settings):
            logger.warning("OPENAI_API_KEY is not set; quizzes will use synthesized questions")
        yield

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoints (do not depend on API_PREFIX)
    application.include_router(health_router)

    application.include_router(profiles.router, prefix=settings.api_prefix)
    application.include_router(skills.router, prefix=settings.api_prefix)
    application.include_router(jobs.router, prefix=settings.api_prefix)
    application.include_router(applications.router, prefix=settings.api_prefix)
    application.include_router(quizzes.router, prefix=settings.api_prefix)
    application.include_router(storage.router, prefix=settings.api_prefix)

    # Avoid accidental schema changes in shared MySQL databases.
    # For local/test sqlite usage, auto-create ORM tables is still convenient.
    db_url = build_sqlalchemy_db_url(settings)
    if db_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    return application


app = create_app()
