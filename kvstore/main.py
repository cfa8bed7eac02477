from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from kvstore.config import Settings, get_settings
from kvstore.errors import InvalidPayload, StoreError
from kvstore.models import (
    DeleteRequest,
    ErrorResponse,
    KeyValue,
    MessageResponse,
    MetricResponse,
    SetEntry,
)
from kvstore.snapshot import SnapshotFile
from kvstore.store import KeyValueStore

logger = logging.getLogger("kvstore")

KEY_NOT_FOUND = "key_not_found"


class ServiceContainer:
    def __init__(self, settings: Settings) -> None:
        snapshot = SnapshotFile(settings.snapshot_path) if settings.snapshot_enabled else None

        self.settings = settings
        self.store = KeyValueStore(snapshot=snapshot)

    def start(self) -> None:
        if not self.store.restore():
            logger.info("Starting with an empty store")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    container = ServiceContainer(settings)
    container.start()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("%s %s ready", settings.app_name, settings.app_version)
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(StoreError)
    async def store_error_handler(_: Request, exc: StoreError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.error).model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=InvalidPayload.status_code,
            content=ErrorResponse(error=InvalidPayload.error).model_dump(),
        )

    def get_store() -> KeyValueStore:
        return app.state.container.store

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/set", response_model=list[SetEntry])
    def set_data(
        body: list[SetEntry],
        store: KeyValueStore = Depends(get_store),
    ) -> list[SetEntry]:
        return store.set(body)

    @app.get("/get", response_model=list[KeyValue])
    def get_data(
        keys: list[str] = Query(default=[]),
        store: KeyValueStore = Depends(get_store),
    ) -> list[KeyValue]:
        return store.get(keys)

    @app.post("/delete", response_model=KeyValue | MessageResponse)
    def delete_data(
        body: DeleteRequest,
        store: KeyValueStore = Depends(get_store),
    ) -> KeyValue | MessageResponse:
        result = store.delete(body.key)
        if not result.found:
            return MessageResponse(message=KEY_NOT_FOUND)
        return result.deleted

    @app.get("/search", response_model=KeyValue, responses={404: {"model": MessageResponse}})
    def search_data(
        keyword: str = "",
        store: KeyValueStore = Depends(get_store),
    ) -> KeyValue | JSONResponse:
        match = store.search(keyword)
        if match is None:
            return JSONResponse(status_code=404, content={"message": KEY_NOT_FOUND})
        return match

    @app.get("/metric", response_model=MetricResponse)
    def get_metric(
        metric: str = "",
        store: KeyValueStore = Depends(get_store),
    ) -> MetricResponse:
        return MetricResponse(metric=metric, count=store.get_metric(metric))

    return app


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
