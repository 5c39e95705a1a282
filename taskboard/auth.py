"""Credential management: password hashing, bearer tokens, registration and profiles."""

import asyncio
import logging
import re
import secrets
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import bcrypt
from jose import JWTError, jwt
from pydantic import ValidationError as SchemaError

from .config import Settings
from .errors import (
    USER_NOT_FOUND,
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
    invalid_credentials,
    invalid_token,
    missing_token,
)
from .ids import IdGenerator
from .logging_utils import kv
from .models import ProfileUpdate, TokenClaims, UserPublic, UserRecord, now_utc
from .store import CredentialStore, normalize_email

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
MIN_FULL_NAME_LENGTH = 2
BCRYPT_MAX_BYTES = 72
DEFAULT_TOKEN_TTL_MIN = 60 * 24 * 7


# --- Password helpers (bcrypt, no passlib) ---

def hash_password(password: str, rounds: int = 12) -> str:
    """Return a bcrypt hash for the given plain password."""
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against its bcrypt hash."""
    # Older bcrypt releases silently truncate at 72 bytes; never let a longer input match.
    if len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # a corrupt hash never matches
        return False


def password_errors(password: str, field: str = "password") -> List[str]:
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"{field} must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        errors.append(f"{field} must be at most {BCRYPT_MAX_BYTES} bytes")
    return errors


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


# --- JWT helpers ---

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_access_token_ttl_minutes(settings: Settings) -> int:
    """
    Return access token TTL in minutes, parsed safely from settings.
    Falls back to 7 days on a non-numeric or non-positive value.
    """
    try:
        minutes = int(settings.JWT_EXPIRE_MIN)
    except (TypeError, ValueError):
        return DEFAULT_TOKEN_TTL_MIN
    return minutes if minutes > 0 else DEFAULT_TOKEN_TTL_MIN


def create_access_token(claims: TokenClaims, settings: Settings) -> str:
    """
    Create a signed JWT carrying the user's id, username and email.
    `sub` holds the id as a string; `exp` is controlled by settings.JWT_EXPIRE_MIN.
    """
    issued = _now_utc()
    payload: Dict[str, Any] = {
        "sub": str(claims.id),
        **claims.model_dump(),
        "iat": issued,
        "exp": issued + timedelta(minutes=get_access_token_ttl_minutes(settings)),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """Check signature and expiry, then the claim shape; AuthError(403) on any failure."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as err:
        raise invalid_token() from err
    try:
        return TokenClaims.model_validate(payload)
    except SchemaError as err:
        raise invalid_token() from err


# --- Service ---

class AuthService:
    """Registers users, logs them in and verifies their bearer tokens.

    bcrypt work runs on a dedicated thread pool so a burst of logins cannot
    stall the event loop (and with it every unrelated task request).
    """

    def __init__(
        self,
        users: CredentialStore,
        ids: IdGenerator,
        settings: Settings,
        *,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._users = users
        self._ids = ids
        self._settings = settings
        self._owns_executor = executor is None
        self._executor: Optional[ThreadPoolExecutor] = executor
        # Unknown usernames are checked against this so both login failures cost one bcrypt round.
        self._dummy_hash = hash_password(secrets.token_urlsafe(16), settings.BCRYPT_ROUNDS)

    def start(self) -> None:
        """Create the hashing pool if it is missing (first start, or after close())."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._settings.HASH_WORKERS, thread_name_prefix="pwhash"
            )

    async def _offload(self, fn: Callable[..., Any], *args: Any) -> Any:
        self.start()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def _hash(self, password: str) -> str:
        return await self._offload(hash_password, password, self._settings.BCRYPT_ROUNDS)

    async def _check(self, password: str, password_hash: str) -> bool:
        return await self._offload(verify_password, password, password_hash)

    def issue_token(self, user: UserRecord) -> str:
        claims = TokenClaims(id=user.id, username=user.username, email=user.email)
        return create_access_token(claims, self._settings)

    async def register(
        self,
        username: Optional[str],
        password: Optional[str],
        email: Optional[str],
        full_name: Optional[str],
    ) -> Tuple[UserPublic, str]:
        username = (username or "").strip()
        password = password or ""
        email = normalize_email(email or "")
        full_name = (full_name or "").strip()

        errors: List[str] = []
        for field, value in (
            ("username", username),
            ("password", password),
            ("email", email),
            ("fullName", full_name),
        ):
            if not value:
                errors.append(f"{field} is required")
        if username and len(username) < MIN_USERNAME_LENGTH:
            errors.append(f"username must be at least {MIN_USERNAME_LENGTH} characters")
        if password:
            errors.extend(password_errors(password))
        if email and not is_valid_email(email):
            errors.append("email must be a valid email address")
        if full_name and len(full_name) < MIN_FULL_NAME_LENGTH:
            errors.append(f"fullName must be at least {MIN_FULL_NAME_LENGTH} characters")
        if errors:
            raise ValidationError(errors)

        # Fail fast before paying for a hash; the store re-checks atomically on insert.
        if self._users.username_taken(username):
            raise ConflictError("username already registered")
        if self._users.email_taken(email):
            raise ConflictError("email already registered")

        password_hash = await self._hash(password)
        now = now_utc()
        user = self._users.add(
            UserRecord(
                id=self._ids.next_id("user"),
                username=username,
                password_hash=password_hash,
                email=email,
                full_name=full_name,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("user registered %s", kv(user_id=user.id, username=user.username))
        return user.public(), self.issue_token(user)

    async def login(self, username: Optional[str], password: Optional[str]) -> Tuple[UserPublic, str]:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("username and password are required")

        user = self._users.get_by_username(username)
        if user is None:
            await self._check(password, self._dummy_hash)
            logger.warning("login failed %s", kv(username=username, reason="unknown_user"))
            raise invalid_credentials()
        if not await self._check(password, user.password_hash):
            logger.warning("login failed %s", kv(username=username, reason="bad_password"))
            raise invalid_credentials()

        logger.info("login ok %s", kv(user_id=user.id))
        return user.public(), self.issue_token(user)

    def verify_token(self, token: Optional[str]) -> TokenClaims:
        if not token or not token.strip():
            raise missing_token()
        return decode_access_token(token.strip(), self._settings)

    def get_profile(self, user_id: int) -> UserPublic:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user.public()

    async def update_profile(self, user_id: int, patch: ProfileUpdate) -> UserPublic:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)

        fields = patch.model_dump(exclude_unset=True)
        changes: Dict[str, Any] = {}
        errors: List[str] = []

        if fields.get("email") is not None:
            email = normalize_email(fields["email"])
            if not is_valid_email(email):
                errors.append("email must be a valid email address")
            else:
                changes["email"] = email
        if fields.get("full_name") is not None:
            full_name = fields["full_name"].strip()
            if len(full_name) < MIN_FULL_NAME_LENGTH:
                errors.append(f"fullName must be at least {MIN_FULL_NAME_LENGTH} characters")
            else:
                changes["full_name"] = full_name
        new_password = fields.get("new_password")
        current_password = fields.get("current_password")
        if new_password is not None:
            errors.extend(password_errors(new_password, "newPassword"))
            if not current_password:
                errors.append("currentPassword is required to set a new password")
        if errors:
            raise ValidationError(errors)

        if "email" in changes and self._users.email_taken(changes["email"], exclude_id=user_id):
            raise ConflictError("email already registered")
        if new_password is not None:
            if not await self._check(current_password, user.password_hash):
                logger.warning("password change rejected %s", kv(user_id=user_id))
                raise AuthError("current password is incorrect", status_code=400)
            changes["password_hash"] = await self._hash(new_password)

        updated = self._users.update(user_id, **changes)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        logger.info(
            "profile updated %s",
            kv(user_id=user_id, fields=",".join(sorted(changes)) or "-"),
        )
        return updated.public()

    def close(self) -> None:
        # An injected pool belongs to the caller; an owned one is rebuilt by the next start()
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
