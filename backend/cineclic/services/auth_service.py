"""
Account service: registration, login and account lookup.

Emails are compared case-insensitively; they are stored lower-cased.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.models.user import User
from cineclic.schemas.user import UserCreate, UserLogin
from cineclic.core.exceptions import Conflict, NotFound, Unauthenticated, Unauthorized
from cineclic.core.security import hash_password, verify_password, create_access_token
from cineclic.core.logging import get_logger

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    return await db.scalar(select(User).where(User.email == normalize_email(email)))


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """Create an account. Raises Conflict (409) when the email is taken."""
    if await find_user_by_email(db, user_data.email) is not None:
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise Conflict("Email already registered")

    user = User(
        email=normalize_email(user_data.email),
        name=user_data.name.strip(),
        hashed_password=hash_password(user_data.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Check credentials and issue a bearer token.

    Unknown email and wrong password are reported the same way so the
    endpoint cannot be used to probe for accounts.
    """
    user = await find_user_by_email(db, login_data.email)
    if user is None or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise Unauthenticated("Invalid email or password")

    if not user.is_active:
        logger.warning("login_rejected_inactive", user_id=user.id)
        raise Unauthorized("Account is deactivated")

    logger.info("user_logged_in", user_id=user.id)
    return create_access_token(data={"sub": str(user.id)})


async def get_active_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    return user
