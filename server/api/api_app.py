"""FastAPI application factory for the document store bridge API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from server.api.routers.ModelRouter import build_model_router
from services.storage.StorageService import StorageService
from shared.clients.ClientInterface import ClientRequestError
from shared.clients.docstore.DocStoreClientInterface import DocStoreClientInterface
from shared.clients.docstore.DocStoreClientManager import DocStoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperValidation import HelperValidation
from shared.logging.logging_setup import setup_logging
from shared.models.record import Model

app_version = os.getenv("APP_VERSION", "unknown")


def create_app(models: list[type[Model]], docstore_client: DocStoreClientInterface | None = None) -> FastAPI:
    """Build the API exposing the given model classes.

    Args:
        models (list[type[Model]]): Model classes to expose, one router each.
        docstore_client (DocStoreClientInterface | None): Client to use instead of the one
            selected by DOCSTORE_ENGINE. Booted by the app if not booted yet.

    Returns:
        FastAPI: The configured application.
    """
    logging = setup_logging()
    config = HelperConfig(logger=logging)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown."""
        app.state.logging = logging
        app.state.config = config

        client = docstore_client or DocStoreClientManager(helper_config=config).get_client()
        if not client.is_booted():
            await client.boot()
        try:
            await client.do_healthcheck()
        except Exception:
            logging.error("Document store %s failed its startup healthcheck.", client.get_engine_name())
            await client.close()
            raise

        app.state.storage_service = StorageService(helper_config=config, docstore_client=client)
        app.state.validator = HelperValidation(helper_config=config)

        logging.info("Document store bridge API ready, serving %d collection(s) from %s.", len(models), client.get_engine_name(), color="green")
        yield

        await client.close()
        logging.info("Document store bridge API shut down.")

    app = FastAPI(
        title="Document Store Bridge",
        description="Generic list, filter, aggregate and write endpoints over a remote document store.",
        version=app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_list_val("APP_ALLOWED_ORIGINS", default=["*"]),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.exception_handler(ClientRequestError)
    async def backend_status_handler(_: Request, exc: ClientRequestError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": f"Document store responded with status {exc.status_code}."})

    @app.exception_handler(httpx.HTTPError)
    async def backend_transport_handler(_: Request, exc: httpx.HTTPError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": f"Document store unreachable: {exc}"})

    for model in models:
        app.include_router(build_model_router(model))

    return app
