from typing import Any
import traceback

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_logout_coordinator
from dispatchlink.core.errors import DispatchError
from dispatchlink.core.logging import get_logger
from dispatchlink.core.security import create_access_token
from dispatchlink.crud.user import authenticate_user, create_user
from dispatchlink.db.session import get_db
from dispatchlink.schemas import LogoutRequest, LogoutResponse, Token, User, UserCreate
from dispatchlink.services.logout import LogoutCoordinator

logger = get_logger("dispatchlink.auth")

router = APIRouter()


@router.post("/auth/login", response_model=Token)
async def login_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get access token for user from login credentials.
    """
    try:
        logger.info(f"Login attempt: username={form_data.username}")
        user = await authenticate_user(db, username=form_data.username, password=form_data.password)

        if not user:
            logger.warning(f"Login failed - incorrect credentials: username={form_data.username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f'User "{form_data.username}" does not exist or incorrect password',
                headers={"WWW-Authenticate": "Bearer"},
            )
        elif not user.is_active:
            logger.warning(f"Login failed - inactive account: username={form_data.username}, user_id={user.id}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is not active",
                headers={"WWW-Authenticate": "Bearer"},
            )

        token = create_access_token(subject=user.id)

        logger.info(f"Login successful: username={form_data.username}, user_id={user.id}")
        return {
            "access_token": token,
            "token_type": "bearer",
            "user_id": user.id,
            "role": user.role,
        }
    except (HTTPException, DispatchError):
        raise
    except Exception as e:
        error_details = traceback.format_exc()
        logger.error(f"Login error: username={form_data.username}, error={str(e)}\n{error_details}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred during login",
        )


@router.post("/auth/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Register a new user.
    """
    logger.info(f"Registration attempt: username={user_in.username}, role={user_in.role.value}")
    try:
        user = await create_user(db, obj_in=user_in)
    except DispatchError as e:
        logger.warning(f"Registration failed: username={user_in.username}, reason={e.message}")
        raise
    logger.info(f"Registration successful: username={user.username}, user_id={user.id}, role={user.role.value}")
    return user


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    logout_in: LogoutRequest,
    db: AsyncSession = Depends(get_db),
    coordinator: LogoutCoordinator = Depends(get_logout_coordinator),
) -> Any:
    """
    Log a user out. Dispatchers hand their Triage incidents to the least busy
    online dispatcher; responders are removed from their vehicle rosters.
    """
    logger.info(f"Logout attempt: username={logout_in.username}, role={logout_in.role.value}")
    result = await coordinator.logout(db, username=logout_in.username, role=logout_in.role)
    return LogoutResponse(
        message=f"User {result.username} logged out",
        username=result.username,
        was_online=result.was_online,
        transferred_incidents=result.transferred_incidents,
        new_commander=result.new_commander,
        released_vehicles=result.released_vehicles,
    )
