"""Model router: CRUD, listing and aggregation endpoints for one model collection.

One router is built per model class; all routes live under /<collection>
and require the X-API-Key header.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from server.models.requests import CountRequest, SumRequest, SyncListRequest
from server.models.responses import CountResponse, NewIdResponse, SumResponse, ValidationErrorResponse
from shared.dependencies.auth import verify_api_key
from shared.models.query import Payload
from shared.models.record import Model, Record


def build_model_router(model: type[Model]) -> APIRouter:
    """Build the router exposing the storage operations for one model class.

    Args:
        model (type[Model]): The model class to expose.

    Returns:
        APIRouter: Router with prefix "/<collection>".
    """
    collection = model.collection_name()
    router = APIRouter(prefix=f"/{collection}", tags=[collection], dependencies=[Depends(verify_api_key)])

    async def respond_list(request: Request, payload: Payload) -> JSONResponse:
        result = await request.app.state.storage_service.list(model, payload)
        return JSONResponse(content=result.model_dump(mode="json"))

    @router.get("")
    async def list_entities(request: Request, page: int = 0, page_size: int = 0) -> JSONResponse:
        """List one page of the collection without filters."""
        return await respond_list(request, Payload(page=page, page_size=page_size))

    @router.post("/list")
    async def query_entities(request: Request, body: Payload) -> JSONResponse:
        """List one page of the collection using filters, orders and paging from the body."""
        request.app.state.logging.debug("List %s: page=%d page_size=%d filters=%d", collection, body.page, body.page_size, len(body.filters))
        return await respond_list(request, body)

    @router.get("/new-id", response_model=NewIdResponse)
    async def new_id(request: Request) -> NewIdResponse:
        return NewIdResponse(id=request.app.state.storage_service.new_id(model))

    @router.post("/count", response_model=CountResponse)
    async def count_entities(request: Request, body: CountRequest) -> CountResponse:
        count = await request.app.state.storage_service.count(model, body.filters)
        return CountResponse(count=count)

    @router.post("/sum", response_model=SumResponse)
    async def sum_field(request: Request, body: SumRequest) -> SumResponse:
        total = await request.app.state.storage_service.sum(model, body.filters, body.field)
        return SumResponse(sum=total)

    @router.post("/sync-list", status_code=202)
    async def sync_list(request: Request, body: SyncListRequest) -> JSONResponse:
        """Set one field on every matching entity. The outcome of the batch is not reported back."""
        await request.app.state.storage_service.sync_list(model, body.filters, body.field, body.value)
        return JSONResponse(status_code=202, content={"status": "accepted"})

    @router.get("/{document_id}")
    async def get_entity(request: Request, document_id: str) -> JSONResponse:
        entity = await request.app.state.storage_service.get(model, document_id)
        if entity.is_empty():
            raise HTTPException(status_code=404, detail=f"{collection}/{document_id} not found.")
        return JSONResponse(content=entity.model_dump(mode="json"))

    @router.put("/{document_id}")
    async def put_entity(request: Request, document_id: str, body: dict[str, Any] = Body(...)) -> JSONResponse:
        """Validate and create or replace an entity.

        Responds 422 with the list of field errors if the entity is invalid.
        """
        if "id" in model.model_fields:
            body = {**body, "id": document_id}
        entity, errors = request.app.state.validator.validate(model, body)
        if errors:
            content = ValidationErrorResponse(errors=errors).model_dump()
            return JSONResponse(status_code=422, content=content)
        if entity.document_id() != document_id:
            raise HTTPException(status_code=400, detail="Document id in path and body differ.")

        if isinstance(entity, Record):
            entity.touch(actor=request.headers.get("X-Actor", ""))
        await request.app.state.storage_service.sync(entity)
        request.app.state.logging.info("Synced %s/%s", collection, document_id)
        return JSONResponse(content=entity.model_dump(mode="json"))

    @router.delete("/{document_id}", status_code=204)
    async def delete_entity(request: Request, document_id: str) -> Response:
        entity = await request.app.state.storage_service.get(model, document_id)
        if entity.is_empty():
            raise HTTPException(status_code=404, detail=f"{collection}/{document_id} not found.")
        await request.app.state.storage_service.delete(entity)
        request.app.state.logging.info("Deleted %s/%s", collection, document_id)
        return Response(status_code=204)

    return router
