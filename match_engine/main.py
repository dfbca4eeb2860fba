from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from match_engine.middleware.error_handlers import ExceptionHandlerMiddleware, RequestLoggingMiddleware
from match_engine.models.settings import EngineSettings
from match_engine.routers import ai
from match_engine.services.db import ProfileRepository
from match_engine.services.engine import MatchEngine
from match_engine.utils.logging_config import configure_for_environment, get_logger

configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Match engine API starting up...")
    settings = EngineSettings.from_env()
    repository = ProfileRepository.from_settings(settings)
    await repository.init_indexes()

    engine = MatchEngine.from_settings(settings, repository=repository)
    app.state.engine = engine
    app.state.repository = repository
    logger.info("Match engine API startup completed")

    yield

    logger.info("Match engine API shutting down...")
    engine.close()
    repository.close()
    logger.info("Match engine API shutdown completed")


def create_app(lifespan_handler=lifespan) -> FastAPI:
    app = FastAPI(title="Match Engine API", version="1.0.0", lifespan=lifespan_handler)

    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware, slow_request_threshold=5.0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    @app.head("/")
    async def root():
        return {"message": "Match Engine API", "version": "1.0.0", "status": "ok"}

    app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
    return app


app = create_app()
