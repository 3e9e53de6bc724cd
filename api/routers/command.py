from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from engine.command_engine import CommandEngine
from engine.errors import CommandValidationError
from models.schemas import CommandRequest, ConfirmRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/command", tags=["command"])


def _engine(request: Request) -> CommandEngine:
    return request.app.state.engine


def _bad_request(exc: CommandValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"response": exc.message, "details": exc.details})


@router.post("")
async def post_command(payload: CommandRequest, request: Request):
    try:
        result = await _engine(request).handle_command(payload.text, payload.conversation_id)
    except CommandValidationError as exc:
        return _bad_request(exc)
    except Exception:
        logger.exception("command_endpoint_failed", extra={"conversation_id": payload.conversation_id})
        return JSONResponse(status_code=500, content={"response": "I encountered an error. Please try again."})
    return result.model_dump(mode="json", by_alias=True)


@router.post("/confirm")
async def post_confirm(payload: ConfirmRequest, request: Request):
    try:
        result = await _engine(request).confirm_command(
            payload.conversation_id,
            payload.confirmed,
            action_type=payload.action_type,
            customer_data=payload.customer_data,
            field_to_edit=payload.field_to_edit,
        )
    except CommandValidationError as exc:
        return _bad_request(exc)
    except Exception:
        logger.exception("command_confirm_endpoint_failed", extra={"conversation_id": payload.conversation_id})
        return JSONResponse(status_code=500, content={"response": "Action failed. Please try again."})
    return result.model_dump(mode="json", by_alias=True)


@router.get("/health")
async def command_health(request: Request):
    return _engine(request).health()
