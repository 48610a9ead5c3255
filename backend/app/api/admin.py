"""Moderation endpoints: message removal and IP blocking."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_blocklist_store, get_message_store, require_admin
from app.config import Settings, get_settings
from app.core.security import ADMIN_SUBJECT, create_access_token
from app.schemas import (
    AdminLoginResponse,
    BlockIPRequest,
    BlockedIPRead,
    DeleteMessageRequest,
    MessageRead,
    OperationResult,
    UnblockIPRequest,
)
from app.services import BlocklistStore, MessageStore, StoreUnavailable
from relay.realtime.managers import Broadcaster, get_broadcaster

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


def _store_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post("/login", response_model=AdminLoginResponse)
def admin_login() -> AdminLoginResponse:
    """Exchange admin credentials for a bearer token."""

    return AdminLoginResponse(access_token=create_access_token({"sub": ADMIN_SUBJECT}))


@router.get("/messages", response_model=list[MessageRead])
async def list_messages(
    store: MessageStore = Depends(get_message_store),
    settings: Settings = Depends(get_settings),
) -> list[MessageRead]:
    try:
        return await store.recent(settings.admin_history_limit)
    except StoreUnavailable:
        logger.exception("Error getting messages for admin")
        raise _store_error("Failed to get messages") from None


@router.post("/messages/delete", response_model=OperationResult)
async def delete_message(
    payload: DeleteMessageRequest,
    store: MessageStore = Depends(get_message_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> OperationResult:
    try:
        await store.delete(payload.message_id)
    except StoreUnavailable:
        logger.exception("Error deleting message %s", payload.message_id)
        raise _store_error("Failed to delete message") from None

    await broadcaster.message_deleted(payload.message_id)
    return OperationResult()


@router.get("/blocked-ips", response_model=list[BlockedIPRead])
async def list_blocked_ips(
    blocklist: BlocklistStore = Depends(get_blocklist_store),
) -> list[BlockedIPRead]:
    try:
        return await blocklist.list_blocked()
    except StoreUnavailable:
        logger.exception("Error getting blocked IPs")
        raise _store_error("Failed to get blocked IPs") from None


@router.post("/block-ip", response_model=OperationResult)
async def block_ip(
    payload: BlockIPRequest,
    blocklist: BlocklistStore = Depends(get_blocklist_store),
) -> OperationResult:
    try:
        await blocklist.add(payload.ip, payload.reason)
    except StoreUnavailable:
        logger.exception("Error blocking IP %s", payload.ip)
        raise _store_error("Failed to block IP") from None
    return OperationResult()


@router.post("/unblock-ip", response_model=OperationResult)
async def unblock_ip(
    payload: UnblockIPRequest,
    blocklist: BlocklistStore = Depends(get_blocklist_store),
) -> OperationResult:
    try:
        await blocklist.remove(payload.ip)
    except StoreUnavailable:
        logger.exception("Error unblocking IP %s", payload.ip)
        raise _store_error("Failed to unblock IP") from None
    return OperationResult()
