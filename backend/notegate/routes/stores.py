"""
NoteGate — Store Dispatch Routes
==================================

What:  POST /<store>/<method> dispatches a named operation with a JSON body;
       GET /<store> lists the store's operation catalogue.
How:   One router per mounted store variant. The handler only deals with
       HTTP: it reads the body as a JSON object, lets the gateway resolve
       and invoke the operation on the request's store handle, and encodes
       the return value. Errors propagate to the handlers in main.py.
Who:   Mounted by create_app() for every entry of ENABLED_STORES.

Example:
    POST /noteStore/createTag
    {"tag": {"name": "groceries"}}
    → 200 {"guid": "...", "name": "groceries", "updateSequenceNum": 7}
"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from notegate.exceptions import ValidationError
from notegate.schemas.api import ErrorResponse, OperationInfo, StoreCatalogResponse
from notegate.services.gateway import DispatchGateway, encode_result
from notegate.services.store_accessor import StoreVariant

logger = logging.getLogger(__name__)


async def read_payload(request: Request) -> Dict[str, Any]:
    """Request body as a JSON object. An empty body counts as {}."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(message=f"Request body is not valid JSON: {exc}", field="body")
    if not isinstance(payload, dict):
        raise ValidationError(
            message="Request body must be a JSON object mapping parameter names to values",
            field="body",
        )
    return payload


def build_store_router(variant: StoreVariant) -> APIRouter:
    """Router exposing `variant`'s operations under /<variant.name>."""
    router = APIRouter(prefix=f"/{variant.name}", tags=[variant.name])
    gateway = DispatchGateway(variant.registry)

    @router.get(
        "",
        response_model=StoreCatalogResponse,
        summary=f"List {variant.name} operations",
    )
    async def describe_store() -> StoreCatalogResponse:
        return StoreCatalogResponse(
            store=variant.name,
            operations=[
                OperationInfo(
                    name=op.name,
                    parameters=list(op.parameter_names) if op.parameters is not None else None,
                    returns=op.return_type_name,
                )
                for op in variant.registry
            ],
        )

    @router.post(
        "/{method_name}",
        responses={
            400: {"description": "Unknown operation or unusable arguments", "model": ErrorResponse},
            404: {"description": "Referenced object not found", "model": ErrorResponse},
            500: {"description": "Server error", "model": ErrorResponse},
        },
        summary=f"Invoke a {variant.name} operation",
    )
    async def dispatch(
        method_name: str,
        request: Request,
        store: Any = Depends(variant.accessor),
    ) -> JSONResponse:
        payload = await read_payload(request)
        result = await gateway.invoke(store, method_name, payload)
        return JSONResponse(content=encode_result(result))

    return router
