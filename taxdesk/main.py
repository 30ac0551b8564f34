"""Chat relay server entry point.

  Settings -> ProviderChain -> REST app (mounted at /api) -> Uvicorn

The Starlette lifespan owns the provider httpx client so it lives on the
same event loop as uvicorn.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.routing import Mount

from taxdesk.api.providers import ProviderChain
from taxdesk.api.rest import create_app
from taxdesk.config import Settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def build_app(settings: Settings, providers: ProviderChain | None = None) -> Starlette:
    """Build the relay app; the API lives under /api like the website backend."""
    providers = providers or ProviderChain(settings)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        await providers.start()
        app.state.providers = providers
        logger.info("Chat relay started for %s", settings.company_name)
        yield
        await providers.close()
        logger.info("Chat relay shutdown complete.")

    api = create_app(providers, settings)
    return Starlette(routes=[Mount(API_PREFIX, app=api)], lifespan=lifespan)


def main() -> None:
    """Entry point -- parse settings, build app, run server."""
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Starting chat relay on %s:%d", settings.host, settings.port)
    if not settings.groq_api_key and not settings.openrouter_api_key:
        logger.warning(
            "Neither GROQ_API_KEY nor OPENROUTER_API_KEY is set -- "
            "/api/chat endpoints will answer 503"
        )

    uvicorn.run(
        build_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
