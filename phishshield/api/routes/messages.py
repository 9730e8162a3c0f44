"""
Scan history endpoints
List, summarize, mark read and delete previously scanned messages
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
import logging

from phishshield.core.config import settings
from phishshield.services.message_store import Message, MessageStore
from phishshield.utils.startup import get_message_store

logger = logging.getLogger(__name__)

router = APIRouter()


class MessageOut(BaseModel):
    """Stored scan record"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    content: str
    sender: Optional[str] = None
    scan_date: datetime
    threat_level: str
    threat_details: Optional[Dict[str, Any]] = None
    is_read: bool
    source: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageOut":
        return cls.model_validate(message.to_dict())


class MessageStats(BaseModel):
    safe: int
    suspicious: int
    phishing: int


class DeleteResponse(BaseModel):
    success: bool


@router.get("/messages", response_model=List[MessageOut])
async def list_messages(
    limit: Optional[int] = Query(None, ge=1, le=500),
    store: MessageStore = Depends(get_message_store)
) -> List[MessageOut]:
    """Recent scans, newest first"""
    return [MessageOut.from_message(m) for m in store.get_messages(limit)]


@router.get("/message-stats", response_model=MessageStats)
async def message_stats(
    days: int = Query(settings.HISTORY_DEFAULT_DAYS, ge=1, le=3650),
    store: MessageStore = Depends(get_message_store)
) -> MessageStats:
    """Counts per threat level for the dashboard"""
    return MessageStats(**store.get_message_stats(days))


@router.patch("/messages/{message_id}/read", response_model=MessageOut)
async def mark_message_read(
    message_id: int,
    store: MessageStore = Depends(get_message_store)
) -> MessageOut:
    message = store.update_message(message_id, is_read=True)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return MessageOut.from_message(message)


@router.delete("/messages/{message_id}", response_model=DeleteResponse)
async def delete_message(
    message_id: int,
    store: MessageStore = Depends(get_message_store)
) -> DeleteResponse:
    if not store.delete_message(message_id):
        raise HTTPException(status_code=404, detail="Message not found")
    logger.info(f"Deleted message {message_id}")
    return DeleteResponse(success=True)
