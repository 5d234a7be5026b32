"""
Account registration, login and bearer tokens.

Passwords are hashed with passlib; tokens are HS256 JWTs carrying the account
id in the ``id`` claim.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from memorymatch.config import Settings, get_settings
from memorymatch.errors import AuthError, ValidationError
from memorymatch.models import Account

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

EMAIL_PATTERN = re.compile(r".+@.+\..+")
MIN_USERNAME_LENGTH, MAX_USERNAME_LENGTH = 3, 30
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_token(account_id: int, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    payload = {
        "id": account_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Optional[Settings] = None) -> int:
    """
    Return the account id stored in a token.

    Raises:
        AuthError: expired, tampered or malformed token
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Not authorized, token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise AuthError("Not authorized, token failed")

    account_id = payload.get("id")
    if not isinstance(account_id, int):
        raise AuthError("Not authorized, token failed")
    return account_id


class AccountStore:
    """Credential store: create accounts and verify passwords."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: int) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def create_account(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> Account:
        """
        Register a new account.

        Raises:
            ValidationError: missing or malformed fields, or username/email taken
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username or not email or not password:
            raise ValidationError("Please enter all fields")
        if not MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be between {MIN_USERNAME_LENGTH} and {MAX_USERNAME_LENGTH} characters"
            )
        if not EMAIL_PATTERN.fullmatch(email):
            raise ValidationError("Please fill a valid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        existing = (
            self.db.query(Account)
            .filter(or_(Account.email == email, Account.username == username))
            .first()
        )
        if existing:
            raise ValidationError("User with that email or username already exists")

        account = Account(
            username=username,
            email=email,
            password_hash=hash_password(password),
            join_date=datetime.now(timezone.utc),
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            self.db.rollback()
            raise ValidationError("User with that email or username already exists")
        self.db.refresh(account)
        logger.info(f"Registered account id={account.id} username={account.username!r}")
        return account

    def authenticate(self, email: Optional[str], password: Optional[str]) -> Account:
        """
        Verify credentials and stamp ``last_login``.

        Raises:
            ValidationError: missing fields
            AuthError: unknown email or wrong password
        """
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Please enter all fields")

        account = self.db.query(Account).filter(Account.email == email).first()
        if account is None or not verify_password(password, account.password_hash):
            logger.info(f"Failed login for email={email!r}")
            raise AuthError("Invalid credentials")

        account.last_login = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(account)
        return account

    def from_token(self, token: str) -> Account:
        account = self.get(decode_token(token))
        if account is None:
            raise AuthError("Not authorized, user not found")
        return account
