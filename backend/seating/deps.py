from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import async_session
from .infrastructure.notifications import ConfirmationSender, build_confirmation_sender
from .models import User, UserRole
from .utils.auth import decode_access_token


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    if authorization is None:
        raise _unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")

    settings = get_settings()
    try:
        claims = decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise _unauthorized("invalid token") from exc

    try:
        role = await session.scalar(select(User.role).where(User.id == claims.user_id, User.is_active.is_(True)))
    except ProgrammingError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user store unavailable") from exc
    finally:
        # Close the autobegun read so routes can open their own transaction.
        await session.rollback()
    if role is None:
        raise _unauthorized("user not found")
    if UserRole(role) != claims.role:
        # Role changed since the token was issued; force a fresh login.
        raise _unauthorized("token is stale")
    return CurrentUser(id=claims.user_id, role=claims.role)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="administrator role required")
    return user


def get_app_settings() -> Settings:
    return get_settings()


def get_confirmation_sender(settings: Settings = Depends(get_app_settings)) -> ConfirmationSender:
    return build_confirmation_sender(settings)
