from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from dispatchlink.core.config import settings
from dispatchlink.core.security import decode_access_token
from dispatchlink.crud.user import get_user
from dispatchlink.db.session import get_db
from dispatchlink.models import User
from dispatchlink.services.connection_registry import ConnectionRegistry
from dispatchlink.services.logout import LogoutCoordinator

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")


def get_registry(connection: HTTPConnection) -> ConnectionRegistry:
    return connection.app.state.registry


def get_logout_coordinator(connection: HTTPConnection) -> LogoutCoordinator:
    return connection.app.state.logout_coordinator


async def get_user_from_token(db: AsyncSession, token: str) -> User:
    """
    Resolve a bearer token to an active user or raise 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user_id = decode_access_token(token)
    if user_id is None:
        raise credentials_exception
    user = await get_user(db, id=user_id)
    if not user or not user.is_active:
        raise credentials_exception
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await get_user_from_token(db, token)

