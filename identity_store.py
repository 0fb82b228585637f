# identity_store.py

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from audit import stamp_created, utcnow
from config import Settings, get_settings
from models import User
from repositories import UserRepository

logger = structlog.get_logger()

PBKDF2_ITERATIONS = 100000


# --- Password hashing (PBKDF2-SHA256) ---

def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"pbkdf2:sha256:{iterations}${salt}${dk.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash or not password_hash.startswith("pbkdf2:sha256:"):
        return False
    parts = password_hash.split("$")
    if len(parts) != 3:
        return False
    header, salt, stored_hash = parts
    try:
        iterations = int(header.split(":")[2])
    except (IndexError, ValueError):
        return False
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return hmac.compare_digest(dk.hex(), stored_hash)


@dataclass
class SessionState:
    """Who is signed in for the current request."""

    user_id: Optional[str] = None
    persistent: bool = False


class UserStore:
    """Identity collaborator: user lookup, credentials, lockout and sign-in.

    Sign-in only records the user on the request's SessionState; issuing and
    reading cookies belongs to the hosting web layer.
    """

    def __init__(self, session: AsyncSession, state: SessionState = None, settings: Settings = None):
        self.settings = settings or get_settings()
        self.users = UserRepository(session)
        self.state = state or SessionState()

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.users.find_by_email(email)

    async def check_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.password_hash)

    async def is_locked_out(self, user: User) -> bool:
        return user.lockout_end is not None and user.lockout_end > utcnow()

    async def get_lockout_end(self, user: User) -> Optional[datetime]:
        return user.lockout_end

    async def record_failed_attempt(self, user: User) -> bool:
        """Count a failed password; returns True when this attempt locked the account."""
        user.access_failed_count = (user.access_failed_count or 0) + 1
        locked = user.access_failed_count >= self.settings.max_failed_login_attempts
        if locked:
            user.lockout_end = utcnow() + timedelta(minutes=self.settings.lockout_minutes)
            user.access_failed_count = 0
            logger.warning("Account locked", user_id=user.id, lockout_end=user.lockout_end.isoformat())
        await self.users.update(user)
        return locked

    async def reset_failed_count(self, user: User) -> None:
        user.access_failed_count = 0
        user.lockout_end = None
        await self.users.update(user)

    async def update_last_login(self, user: User) -> None:
        user.last_login_date = utcnow()
        await self.users.update(user)

    async def sign_in(self, user: User, persistent: bool = False) -> None:
        self.state.user_id = user.id
        self.state.persistent = persistent

    async def sign_out(self) -> None:
        self.state.user_id = None
        self.state.persistent = False

    async def current_user(self) -> Optional[User]:
        if not self.state.user_id:
            return None
        return await self.users.get_by_id(self.state.user_id)

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        is_active: bool = True,
        created_by: Optional[str] = "System",
    ) -> User:
        user = User(
            email=email.strip(),
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            is_active=is_active,
            access_failed_count=0,
        )
        stamp_created(user, created_by)
        return await self.users.add(user)
