"""
Account endpoints: registration, login and profile.
"""
import logging

from fastapi import APIRouter, Depends, status

from memorymatch.config import get_settings
from memorymatch.deps import get_account_store, get_current_account
from memorymatch.errors import APIError, InternalError
from memorymatch.models import Account
from memorymatch.schemas import (
    AuthData, AuthResponse, ErrorResponse, LoginRequest, ProfileData, ProfileResponse, RegisterRequest,
)
from memorymatch.services.accounts import AccountStore, create_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
settings = get_settings()


def _auth_data(account: Account) -> AuthData:
    return AuthData(
        id=account.id,
        username=account.username,
        email=account.email,
        token=create_token(account.id),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid field, or account already exists"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Register a new account",
)
def register(payload: RegisterRequest, accounts: AccountStore = Depends(get_account_store)):
    try:
        account = accounts.create_account(payload.username, payload.email, payload.password)
    except APIError:
        raise
    except Exception as e:
        logger.error(f"Error during user registration: {str(e)}", exc_info=True)
        raise InternalError("Server error during registration", str(e) if settings.is_development else None)

    return AuthResponse(data=_auth_data(account), message="User registered successfully")


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing email or password"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Log in and get a bearer token",
)
def login(payload: LoginRequest, accounts: AccountStore = Depends(get_account_store)):
    try:
        account = accounts.authenticate(payload.email, payload.password)
    except APIError:
        raise
    except Exception as e:
        logger.error(f"Error during user login: {str(e)}", exc_info=True)
        raise InternalError("Server error during login", str(e) if settings.is_development else None)

    logger.info(f"User logged in: id={account.id}")
    return AuthResponse(data=_auth_data(account), message="Logged in successfully")


@router.get(
    "/me",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"}},
    summary="Get the caller's profile",
)
async def me(account: Account = Depends(get_current_account)):
    return ProfileResponse(
        data=ProfileData(
            id=account.id,
            username=account.username,
            email=account.email,
            join_date=account.join_date,
            last_login=account.last_login,
        ),
        message="User profile retrieved",
    )
