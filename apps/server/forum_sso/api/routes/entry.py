"""Entry routes: provider callback, connect step and sign-in redirects."""

import logging
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from forum_sso.api.dependencies import get_db, get_session_stash
from forum_sso.core.config import settings
from forum_sso.core.security import create_access_token
from forum_sso.integrations.oauth.exceptions import ConfigurationError, ProviderRejectedError
from forum_sso.schemas.sso import ConnectDataResponse
from forum_sso.services import activity_logs
from forum_sso.services.providers import get_client
from forum_sso.services.sso_flow import (
    LinkedResult,
    connect_data,
    default_sign_in_url,
    handle_callback,
    sign_in_url,
)
from forum_sso.services.stash import SessionStash

router = APIRouter(tags=["entry"])
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


@router.get("/signin")
async def default_sign_in(
    db: Session = Depends(get_db),
    target: Optional[str] = Query(None, alias="Target"),
) -> RedirectResponse:
    """Send the user straight to the default provider, when one is set."""

    url = default_sign_in_url(db, target or settings.sso_default_target)
    if url is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No default sign-in provider is configured.",
        )
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@router.get("/connect/{provider}", response_model=ConnectDataResponse)
async def connect(
    provider: str,
    target: Optional[str] = Query(None, alias="Target"),
    db: Session = Depends(get_db),
    stash: SessionStash = Depends(get_session_stash),
) -> ConnectDataResponse:
    """Hand the stashed profile to the forum's registration or sign-in."""

    data = connect_data(db, provider, stash)

    session_token = None
    if data.user_id is not None:
        session_token = create_access_token(subject=str(data.user_id))
        logger.info("Signed in user %s via %s", data.user_id, provider)

    return ConnectDataResponse(
        provider=provider,
        profile=data.profile,
        target=target,
        user_id=data.user_id,
        session_token=session_token,
        trusted=data.trusted,
        verified=data.verified,
    )


@router.get("/{provider}/authorize")
async def authorize(
    provider: str,
    target: Optional[str] = Query(None, alias="Target"),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Redirect the browser to the provider's authorization page."""

    client = get_client(db, provider)
    if not client.is_configured():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Provider '{provider}' is not configured.",
        )
    return RedirectResponse(
        url=sign_in_url(client, target or settings.sso_default_target),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/{provider}")
@limiter.limit(settings.sso_entry_rate_limit)
async def entry_endpoint(
    provider: str,
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    stash: SessionStash = Depends(get_session_stash),
) -> RedirectResponse:
    """Handle the provider redirecting back with ``code``/``state`` or ``error``."""

    client = get_client(db, provider)
    if error:
        raise ProviderRejectedError(error, provider_key=provider)
    if not client.is_configured():
        raise ConfigurationError(
            f"Provider '{provider}' is not configured.", provider_key=provider
        )

    result = await handle_callback(
        db,
        client,
        stash,
        code=code,
        state=state,
        error=error,
        notify=partial(activity_logs.notify, db),
    )

    if isinstance(result, LinkedResult):
        return RedirectResponse(
            url=f"{settings.frontend_redirect_url_web}/profile/connections",
            status_code=status.HTTP_303_SEE_OTHER,
        )
    return RedirectResponse(url=result.url, status_code=status.HTTP_302_FOUND)


__all__ = ["router", "limiter"]
