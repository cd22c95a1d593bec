# backend/formadb/apps/voice/router.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from formadb.security import get_current_active_user
from ..accounts import models as account_models
from . import schemas
from .parser import parse_command

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["voice"])


@router.post(
    "/command",
    response_model=schemas.VoiceAction,
    summary="Interpret a voice command into a UI action",
)
def voice_command(
    payload: schemas.VoiceCommandRequest,
    current_user: account_models.User = Depends(get_current_active_user),
):
    if not payload.user_input or not payload.user_input.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User input is required",
        )

    intent = parse_command(payload.user_input, payload.page_context)
    action = intent.as_action()
    logger.info(
        "Voice command interpreted",
        extra={
            "user_id": current_user.id,
            "action": action["action"],
            "target": action["target"],
            "has_focus": payload.focused_element is not None,
        },
    )
    return schemas.VoiceAction(**action)
