import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure

from wyzar_messaging.config import Settings, get_settings
from wyzar_messaging.database.connection import (
    close_mongo_connection,
    connect_to_mongo,
    ensure_indexes,
    get_database,
    use_database,
)
from wyzar_messaging.errors import ChatError, TransientStoreError
from wyzar_messaging.routers.conversations import router as conversations_router
from wyzar_messaging.routers.messages import router as messages_router
from wyzar_messaging.routers.moderation import router as moderation_router
from wyzar_messaging.routers.presence import router as presence_router
from wyzar_messaging.utils.realtime_bus import build_bus
from wyzar_messaging.utils.relay import Relay
from wyzar_messaging.utils.websocket_manager import ConnectionRegistry


logger = logging.getLogger(__name__)


def _error_response(exc: ChatError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": {"type": type(exc).__name__, "status_code": exc.status_code}},
    )


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc)


async def store_error_handler(request: Request, exc: ConnectionFailure) -> JSONResponse:
    logger.error("Datastore unavailable during %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(TransientStoreError("Datastore temporarily unavailable"))


def create_app(settings: Optional[Settings] = None, database=None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database is None:
            await connect_to_mongo(settings.mongodb_url, settings.mongodb_db)
        else:
            use_database(database)
        await ensure_indexes(get_database())
        try:
            yield
        finally:
            await app.state.relay.close()
            await close_mongo_connection()

    app = FastAPI(title="WyZar Messaging", lifespan=lifespan)
    app.state.settings = settings
    app.state.relay = Relay(ConnectionRegistry(), build_bus(settings.redis_url), settings.typing_timeout_seconds)

    app.add_exception_handler(ChatError, chat_error_handler)
    app.add_exception_handler(ConnectionFailure, store_error_handler)

    app.include_router(conversations_router)
    app.include_router(messages_router)
    app.include_router(moderation_router)
    app.include_router(presence_router)

    @app.get("/")
    async def root():
        return {"message": "WyZar messaging service"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wyzar_messaging.main:app", host="0.0.0.0", port=8000)
