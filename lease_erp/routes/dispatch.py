from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from lease_erp.application import get_dispatch_service
from lease_erp.core.envelope import RequestEnvelope
from lease_erp.logging_config import LogContext, get_logger

router = APIRouter(tags=["dispatch"])
logger = get_logger(__name__)


@router.get("/endpoints")
async def list_endpoints() -> dict:
    service = get_dispatch_service()
    return {"items": service.endpoints()}


@router.post("/{area}/{entity}")
async def dispatch(area: str, entity: str, payload: dict[str, Any]) -> dict:
    service = get_dispatch_service()
    handler = service.handler_for(f"/{area}/{entity}")
    if handler is None:
        raise HTTPException(status_code=404, detail=f"unknown endpoint /{area}/{entity}")
    try:
        envelope = RequestEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False)) from exc

    user_id = envelope.parameters.get("CurrentUserID")
    with LogContext.bind(endpoint=handler.endpoint, mode=envelope.mode, user_id=user_id):
        response = handler.dispatch(envelope.mode, envelope.parameters)
    return response.to_wire()
