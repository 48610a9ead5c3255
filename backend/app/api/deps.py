"""FastAPI dependencies for the API layer."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials, HTTPBearer

from app.config import Settings, get_settings
from app.core.security import ADMIN_SUBJECT, decode_access_token, verify_admin_credentials
from app.services import (
    BlocklistStore,
    MessageStore,
    ReactionAggregator,
    get_blocklist_store,
    get_message_store,
)

basic_scheme = HTTPBasic(auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Basic"},
    )


def require_admin(
    basic: HTTPBasicCredentials | None = Depends(basic_scheme),
    bearer: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> str:
    """Accept either the admin email/password or an admin bearer token."""

    if basic is not None:
        if verify_admin_credentials(basic.username, basic.password, settings):
            return basic.username
        raise _unauthorized()

    if bearer is not None:
        try:
            payload = decode_access_token(bearer.credentials, settings)
        except HTTPException:
            raise _unauthorized() from None
        if payload.get("sub") == ADMIN_SUBJECT:
            return settings.admin_email
    raise _unauthorized()


def get_reaction_aggregator(
    store: MessageStore = Depends(get_message_store),
    settings: Settings = Depends(get_settings),
) -> ReactionAggregator:
    return ReactionAggregator(
        store,
        lookup_window=settings.reaction_lookup_window,
        max_count=settings.reaction_max_count,
    )


__all__ = [
    "BlocklistStore",
    "MessageStore",
    "get_blocklist_store",
    "get_message_store",
    "get_reaction_aggregator",
    "require_admin",
]
