"""Routes for a signed-in user's provider connections."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from forum_sso.api.dependencies import get_db, get_session_stash, require_active_user
from forum_sso.models.user import User
from forum_sso.schemas.sso import AuthorizationUrlResponse, ConnectionRead
from forum_sso.services.providers import get_client
from forum_sso.services.sso_flow import profile_connect_url
from forum_sso.services.stash import SessionStash
from forum_sso.services.users import (
    get_user_access_token,
    get_user_attribute,
    get_user_identity_links,
)

router = APIRouter(tags=["connections"])


@router.get("", response_model=List[ConnectionRead])
async def list_connections(
    current_user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> List[ConnectionRead]:
    """List the provider identities linked to the current user."""

    connections = []
    for link in get_user_identity_links(db, current_user.id):
        attributes = get_user_attribute(current_user, link.provider_key) or {}
        connections.append(
            ConnectionRead(
                provider=link.provider_key,
                unique_id=link.unique_id,
                connected=bool(attributes.get("AccessToken")),
                profile=attributes.get("Profile"),
            )
        )
    return connections


@router.post("/{provider}", response_model=AuthorizationUrlResponse)
async def start_connection(
    provider: str,
    current_user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
    stash: SessionStash = Depends(get_session_stash),
) -> AuthorizationUrlResponse:
    """Return the URL that connects ``provider`` to the current user.

    The callback only accepts the returned state from this same session.
    """

    client = get_client(db, provider)
    if not client.is_configured():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Provider '{provider}' is not configured.",
        )
    return AuthorizationUrlResponse(
        authorization_url=profile_connect_url(client, stash, current_user.id)
    )


@router.get("/{provider}", response_model=ConnectionRead)
async def get_connection(
    provider: str,
    current_user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> ConnectionRead:
    """Report whether the current user holds a token for ``provider``."""

    client = get_client(
        db,
        provider,
        token_loader=lambda key: get_user_access_token(db, current_user.id, key),
    )
    attributes = get_user_attribute(current_user, provider) or {}
    profile = attributes.get("Profile")

    return ConnectionRead(
        provider=provider,
        unique_id=(profile or {}).get("UniqueID"),
        connected=bool(client.access_token()),
        profile=profile,
    )


__all__ = ["router"]
