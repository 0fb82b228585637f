# identity_service.py

from typing import Optional

import structlog

from config import Settings, get_settings
from identity_store import UserStore
from models import User
from schemas import LoginResult, UserInfo

logger = structlog.get_logger()

ADMIN_ROLE = "Admin"
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_LOCKED = "Your account is locked. Please try again later."
ACCOUNT_JUST_LOCKED = (
    "Your account has been locked due to multiple failed login attempts. Please try again later."
)


class IdentityService:
    """Login, logout and current-user lookup on top of a UserStore.

    Unknown emails, inactive accounts and wrong passwords all produce the same
    failure message so callers cannot probe which accounts exist. A locked
    account gets its own message.
    """

    def __init__(self, store: UserStore, settings: Settings = None):
        self.store = store
        self.settings = settings or get_settings()

    def to_user_info(self, user: User) -> UserInfo:
        admins = {email.lower() for email in self.settings.admin_emails}
        roles = [ADMIN_ROLE] if user.email.lower() in admins else []
        return UserInfo(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            roles=roles,
        )

    async def login(self, email: Optional[str], password: Optional[str], remember_me: bool = False) -> LoginResult:
        if not email or not password:
            return LoginResult(success=False, error_message=INVALID_CREDENTIALS)

        user = await self.store.find_by_email(email)
        if user is None:
            logger.warning("User not found for login", email=email)
            return LoginResult(success=False, error_message=INVALID_CREDENTIALS)

        if not user.is_active:
            logger.warning("Login attempt for inactive account", email=email)
            return LoginResult(success=False, error_message=INVALID_CREDENTIALS)

        if await self.store.is_locked_out(user):
            lockout_end = await self.store.get_lockout_end(user)
            logger.warning("Login attempt for locked account", email=email)
            message = ACCOUNT_LOCKED
            if lockout_end is not None:
                message = (
                    f"Your account is locked until {lockout_end:%Y-%m-%d %H:%M} UTC. "
                    "Please try again later."
                )
            return LoginResult(success=False, error_message=message)

        if not await self.store.check_password(user, password):
            logger.warning("Invalid password attempt", email=email)
            if await self.store.record_failed_attempt(user):
                return LoginResult(success=False, error_message=ACCOUNT_JUST_LOCKED)
            return LoginResult(success=False, error_message=INVALID_CREDENTIALS)

        await self.store.sign_in(user, persistent=remember_me)
        await self.store.reset_failed_count(user)
        await self.store.update_last_login(user)
        logger.info("User logged in", user_id=user.id)
        return LoginResult(success=True, user=self.to_user_info(user))

    async def logout(self) -> None:
        await self.store.sign_out()

    async def get_current_user(self) -> Optional[UserInfo]:
        user = await self.store.current_user()
        if user is not None and user.is_active:
            return self.to_user_info(user)
        return None
