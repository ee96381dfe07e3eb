import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pokedex_api.auth import AuthError, auth_error_handler
from pokedex_api.config import Settings
from pokedex_api.db import create_engine, create_sessionmaker, run_migrations
from pokedex_api.pokeapi_client import PokeApiClient
from pokedex_api.routes import router

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup / shutdown.

    Runs the database migrations before the app starts serving requests and
    opens the shared upstream client; both are released on shutdown.
    """
    settings: Settings = app.state.settings

    await run_migrations(app.state.engine)

    app.state.pokeapi = PokeApiClient(
        settings.pokeapi_base_url,
        httpx.AsyncClient(timeout=settings.request_timeout),
    )
    logger.info("Pokedex API ready (upstream %s)", settings.pokeapi_base_url)
    try:
        yield
    finally:
        await app.state.pokeapi.aclose()
        await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        settings = Settings.from_env()

    app = FastAPI(title="Pokedex Proxy", lifespan=lifespan)

    engine = create_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = create_sessionmaker(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AuthError, auth_error_handler)
    app.include_router(router, prefix=settings.api_prefix)

    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
