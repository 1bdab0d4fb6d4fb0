# lexiquest/auth.py
from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError
from sqlalchemy.exc import IntegrityError

from .errors import AuthError, ConflictError, InvalidTokenError, NotFoundError, ValidationError
from .log import get_logger
from .models import UserAccount, default_preferences, utcnow
from .stores import UserStore

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)
BCRYPT_ROUNDS = 12
MIN_PASSWORD_LEN = 6
MAX_NAME_LEN = 50

_PASSWORD_STRENGTH = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)", re.DOTALL)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# ───────── Hashing ─────────
def _pw_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]

def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(_pw_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")

def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_bytes(password), hashed.encode("ascii"))
    except ValueError:
        return False


# ───────── Tokens ─────────
def issue_token(user: UserAccount, secret: str) -> str:
    now = utcnow()
    payload = {
        "user": {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
        },
        "iat": now,
        "exp": now + TOKEN_TTL,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

def decode_token(token: Optional[str], secret: str) -> Identity:
    """Any failure is reported the same way; the reason is only logged."""
    if not token:
        raise InvalidTokenError("No token provided")
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        user = payload["user"]
        return Identity(
            id=int(user["id"]),
            email=str(user["email"]),
            first_name=user.get("firstName"),
            last_name=user.get("lastName"),
        )
    except (jwt.PyJWTError, KeyError, TypeError, ValueError, AttributeError) as e:
        logger.info(f"Rejected token: {e.__class__.__name__}")
        raise InvalidTokenError("Invalid token")


# ───────── Validation ─────────
def _normalize_email(email: Optional[str]) -> str:
    try:
        _, normalized = validate_email((email or "").strip())
    except PydanticCustomError:
        raise ValidationError("Please enter a valid email address")
    return normalized.lower()

def _check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LEN:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LEN} characters long")
    if not _PASSWORD_STRENGTH.search(password):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )

def _clean_name(value: Optional[str], label: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) > MAX_NAME_LEN:
        raise ValidationError(f"{label} cannot exceed {MAX_NAME_LEN} characters")
    return value


# ───────── Serialization ─────────
def user_out(user: UserAccount, with_login: bool = False) -> Dict[str, Any]:
    out = {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "fullName": user.full_name,
    }
    if with_login:
        out["lastLogin"] = user.last_login
    return out

def profile_out(user: UserAccount, with_dates: bool = True) -> Dict[str, Any]:
    out = user_out(user)
    out["preferences"] = {**default_preferences(), **(user.preferences or {})}
    if with_dates:
        out["createdAt"] = user.created_at
        out["lastLogin"] = user.last_login
    return out


class AuthService:
    def __init__(self, users: UserStore, secret: str, rounds: int = BCRYPT_ROUNDS):
        self.users = users
        self.secret = secret
        self.rounds = rounds
        # checked against when the email is unknown
        self._dummy_hash = hash_password("lexiquest-unknown-account", rounds)

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not email or not password:
            raise ValidationError("Email and password are required")
        email = _normalize_email(email)
        _check_password_strength(password)
        first_name = _clean_name(first_name, "First name")
        last_name = _clean_name(last_name, "Last name")

        if await self.users.get_by_email(email) is not None:
            raise ConflictError("User already exists with this email")

        hashed = await asyncio.to_thread(hash_password, password, self.rounds)
        try:
            user = await self.users.create(email, hashed, first_name, last_name)
        except IntegrityError:
            raise ConflictError("User already exists with this email")

        logger.info(f"Registered user {user.id}")
        return {"token": issue_token(user, self.secret), "user": user_out(user)}

    async def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not email or not password:
            raise ValidationError("Email and password are required")
        email = _normalize_email(email)

        user = await self.users.get_by_email(email)
        if user is None:
            await asyncio.to_thread(check_password, password, self._dummy_hash)
            raise AuthError("Invalid email or password")
        if not user.is_active:
            raise AuthError("Account has been deactivated")

        ok = await asyncio.to_thread(check_password, password, user.password_hash)
        if not ok:
            raise AuthError("Invalid email or password")

        user = await self.users.touch_login(user.id) or user
        return {"token": issue_token(user, self.secret), "user": user_out(user, with_login=True)}

    def verify(self, token: Optional[str]) -> Identity:
        return decode_token(token, self.secret)

    async def me(self, identity: Identity) -> Dict[str, Any]:
        user = await self.users.get(identity.id)
        if user is None:
            raise NotFoundError("User not found")
        return profile_out(user)

    async def update_profile(
        self,
        identity: Identity,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        user = await self.users.get(identity.id)
        if user is None:
            raise NotFoundError("User not found")

        values: Dict[str, Any] = {}
        if first_name is not None:
            values["first_name"] = _clean_name(first_name, "First name")
        if last_name is not None:
            values["last_name"] = _clean_name(last_name, "Last name")
        if preferences:
            values["preferences"] = {**default_preferences(), **(user.preferences or {}), **preferences}

        if values:
            user = await self.users.update(user.id, **values) or user
        return profile_out(user, with_dates=False)
