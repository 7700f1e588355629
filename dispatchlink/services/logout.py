import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import UserNotFoundError
from dispatchlink.core.logging import get_logger
from dispatchlink.crud.incident import (
    count_triage_incidents,
    get_triage_incidents,
    remove_member_from_vehicles,
    transfer_incidents,
)
from dispatchlink.crud.user import get_user_by_username, get_users_by_role
from dispatchlink.models import User, UserRole
from dispatchlink.services.connection_registry import ConnectionRegistry

logger = get_logger("dispatchlink.logout")


@dataclass
class LogoutResult:
    username: str
    was_online: bool = False
    transferred_incidents: List[str] = field(default_factory=list)
    new_commander: Optional[str] = None
    released_vehicles: List[str] = field(default_factory=list)


class LogoutCoordinator:
    """
    Ends user sessions without orphaning their work.

    Dispatchers hand their Triage incidents to the least busy online
    dispatcher. Every other role is taken off the vehicle rosters it was
    assigned to; command of an incident is never moved for them.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        # Serialises the read-count-transfer sequence between concurrent dispatcher logouts
        self._rebalance_lock = asyncio.Lock()

    async def logout(self, db: AsyncSession, username: str, role: UserRole) -> LogoutResult:
        if role == UserRole.DISPATCH:
            return await self.logout_dispatcher(db, username)
        return await self.logout_responder(db, username)

    async def _resolve(self, db: AsyncSession, username: str) -> User:
        user = await get_user_by_username(db, username=username)
        if not user:
            raise UserNotFoundError(username)
        return user

    def end_session(self, user: User, result: LogoutResult) -> LogoutResult:
        result.was_online = self.registry.unregister(user.id)
        if not result.was_online:
            logger.warning(f"User {user.username} logged out without a live connection")
        return result

    async def logout_dispatcher(self, db: AsyncSession, username: str) -> LogoutResult:
        """
        Log a dispatcher out, moving their Triage incidents to the online
        dispatcher with the fewest Triage incidents. With nobody online to
        take over, the incidents keep their commander.
        """
        user = await self._resolve(db, username)
        result = LogoutResult(username=username)

        async with self._rebalance_lock:
            # Offline before choosing, so a concurrent logout never picks this user
            self.end_session(user, result)
            candidates = [
                dispatcher
                for dispatcher in await get_users_by_role(db, UserRole.DISPATCH)
                if dispatcher.username != username and self.registry.is_online(dispatcher.id)
            ]

            if not candidates:
                logger.info(f"No other dispatcher online, {username} keeps their incidents")
            else:
                incidents = await get_triage_incidents(db, commander=username)
                if incidents:
                    target = await self.find_least_busy_dispatcher(db, candidates)
                    await transfer_incidents(db, incidents, commander=target.username)
                    result.new_commander = target.username
                    result.transferred_incidents = [incident.incident_id for incident in incidents]
                    for incident_id in result.transferred_incidents:
                        logger.info(f"Transferred command of {incident_id} from {username} to {target.username}")

        if result.new_commander:
            target = next(c for c in candidates if c.username == result.new_commander)
            await self.registry.send_to_user(
                target.id,
                "incidentCommandTransferred",
                {"from": username, "incidents": result.transferred_incidents},
            )

        logger.info(f"User {username} logged out")
        return result

    async def find_least_busy_dispatcher(self, db: AsyncSession, dispatchers: List[User]) -> User:
        """
        Pick the dispatcher commanding the fewest Triage incidents.
        Equal loads go to the lowest user id.
        """
        loads = await count_triage_incidents(db, [dispatcher.username for dispatcher in dispatchers])
        return min(dispatchers, key=lambda dispatcher: (loads[dispatcher.username], dispatcher.id))

    async def logout_responder(self, db: AsyncSession, username: str) -> LogoutResult:
        """
        Log a user out and remove them from every assigned vehicle roster.
        """
        user = await self._resolve(db, username)
        result = LogoutResult(username=username)

        vehicles = await remove_member_from_vehicles(db, username=username)
        result.released_vehicles = [vehicle.name for vehicle in vehicles]
        if vehicles:
            logger.info(f"Removed {username} from vehicles {', '.join(result.released_vehicles)}")

        self.end_session(user, result)
        logger.info(f"User {username} logged out")
        return result
