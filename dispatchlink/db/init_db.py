from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from dispatchlink.core.config import settings
from dispatchlink.core.logging import get_logger
from dispatchlink.core.security import get_password_hash
from dispatchlink.db.base_class import Base
from dispatchlink.models import User, UserRole

logger = get_logger("dispatchlink.db")


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables initialized")


async def create_initial_data(session: AsyncSession) -> None:
    """Create the administrator account if it does not exist yet."""
    result = await session.execute(
        select(User).filter(User.username == settings.ADMIN_USERNAME)
    )
    admin = result.scalars().first()

    if not admin:
        session.add(
            User(
                username=settings.ADMIN_USERNAME,
                hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
                role=UserRole.ADMINISTRATOR,
                is_active=True,
            )
        )
        await session.commit()
        logger.info("Administrator account created")

    logger.info("Initial data created")
