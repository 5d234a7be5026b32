"""FastAPI dependencies wiring sessions, repositories and caller identity."""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from memorymatch.config import get_settings
from memorymatch.database import get_db
from memorymatch.errors import AuthError
from memorymatch.models import Account
from memorymatch.repository import SQLAlchemyScoreRepository
from memorymatch.services.accounts import AccountStore
from memorymatch.services.scores import ScoreService

bearer = HTTPBearer(auto_error=False)


def get_score_service(db: Session = Depends(get_db)) -> ScoreService:
    return ScoreService(SQLAlchemyScoreRepository(db))


def get_account_store(db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    accounts: AccountStore = Depends(get_account_store),
) -> Account:
    """Resolve the bearer token to an account or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")
    return accounts.from_token(credentials.credentials)


def get_submitting_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    accounts: AccountStore = Depends(get_account_store),
) -> Optional[Account]:
    """
    Caller identity for score submission.

    Without a token the request is anonymous when ``ALLOW_ANONYMOUS_SCORES``
    is set, otherwise rejected. A token that is present but invalid is always
    rejected.
    """
    if credentials is None or not credentials.credentials:
        if get_settings().allow_anonymous_scores:
            return None
        raise AuthError("Not authorized, no token")
    return accounts.from_token(credentials.credentials)
