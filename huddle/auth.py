"""
Sign-up, sign-in and bearer-token handling.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from huddle.errors import AuthenticationError, InvalidRequestError
from huddle.records import User, UserRole
from huddle.repository import TeamRepository

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Stores password hashes in the key-value store and issues HS256 tokens."""

    def __init__(
        self,
        repo: TeamRepository,
        *,
        secret: str,
        algorithm: str = "HS256",
        expiry_hours: int = 168,
    ):
        self.repo = repo
        self.secret = secret
        self.algorithm = algorithm
        self.expiry = timedelta(hours=expiry_hours)

    def signup(
        self,
        *,
        email: str,
        password: str,
        role: UserRole,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        nickname: Optional[str] = None,
    ) -> User:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidRequestError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )
        return self.repo.create_user(
            email=email,
            password_hash=pwd_context.hash(password),
            role=role,
            first_name=first_name,
            last_name=last_name,
            phone=phone or "",
            nickname=nickname or "",
        )

    def signin(self, email: str, password: str) -> tuple[str, User]:
        credential = self.repo.get_credential(email)
        if not credential or not pwd_context.verify(password, credential.password_hash):
            logger.info("Failed sign-in for %s", email.strip().lower())
            raise InvalidRequestError("Invalid login credentials")
        user = self.repo.get_user(credential.user_id)
        return self.create_token(user), user

    def create_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "role": str(user.role),
            "iat": now,
            "exp": now + self.expiry,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> str:
        """Return the user id a token was issued to."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")
        user_id = payload.get("sub")
        if not user_id or not self.repo.find_user(user_id):
            raise AuthenticationError("Unauthorized")
        return user_id
