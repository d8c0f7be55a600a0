"""Routes describing the available sign-in methods."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from forum_sso.api.dependencies import get_db
from forum_sso.core.config import settings
from forum_sso.schemas.sso import SignInMethod
from forum_sso.services.sso_flow import list_sign_in_methods

router = APIRouter(tags=["sso"])


@router.get("/methods", response_model=List[SignInMethod])
async def sign_in_methods(
    target: Optional[str] = Query(None, alias="Target"),
    db: Session = Depends(get_db),
) -> List[SignInMethod]:
    """Sign-in buttons for every configured provider."""

    return [
        SignInMethod(**method)
        for method in list_sign_in_methods(db, target or settings.sso_default_target)
    ]


__all__ = ["router"]
