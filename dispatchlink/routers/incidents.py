from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user
from dispatchlink.core.errors import NotFoundError
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.models import IncidentState, User
from dispatchlink.schemas import Incident as IncidentSchema
from dispatchlink.schemas import ChatGroupLink, CommanderTransfer, IncidentCreate, IncidentUpdate, IncidentVehicleCreate
from dispatchlink.crud.chat import get_channel_or_404
from dispatchlink.crud.incident import (
    add_vehicle,
    close_incident,
    create_incident,
    get_incident_or_404,
    get_incidents,
    link_chat_group,
    remove_vehicle,
    transfer_incidents,
    update_incident,
)
from dispatchlink.crud.user import get_user_by_username

logger = get_logger("dispatchlink.incidents")

router = APIRouter()


@router.post("/incidents", response_model=IncidentSchema, status_code=status.HTTP_201_CREATED)
async def create_new_incident(
    incident_in: IncidentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Create new incident. The creator owns and commands it unless told otherwise.
    """
    incident = await create_incident(db, obj_in=incident_in, username=current_user.username)
    logger.info(f"Incident {incident.incident_id} created by {current_user.username}")
    return incident


@router.get("/incidents", response_model=List[IncidentSchema])
async def read_incidents(
    skip: int = 0,
    limit: int = 100,
    commander: Optional[str] = None,
    caller: Optional[str] = None,
    state: Optional[IncidentState] = None,
    channel_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Retrieve incidents, optionally filtered by commander, caller, state or chat channel.
    """
    return await get_incidents(
        db,
        skip=skip,
        limit=limit,
        commander=commander,
        caller=caller,
        state=state,
        channel_id=channel_id,
    )


@router.get("/incidents/{incident_id}", response_model=IncidentSchema)
async def read_incident(
    incident_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get incident by its incident ID.
    """
    return await get_incident_or_404(db, incident_id=incident_id)


@router.put("/incidents/{incident_id}", response_model=IncidentSchema)
async def update_incident_details(
    incident_id: str,
    incident_in: IncidentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Update an incident's state, priority, type, address or owner.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    return await update_incident(db, db_obj=incident, obj_in=incident_in)


@router.put("/incidents/{incident_id}/commander", response_model=IncidentSchema)
async def transfer_command(
    incident_id: str,
    transfer_in: CommanderTransfer,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Hand command of an incident to another user.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    if not await get_user_by_username(db, username=transfer_in.commander):
        raise NotFoundError(f"User with name {transfer_in.commander} not found")

    previous = incident.commander
    await transfer_incidents(db, [incident], commander=transfer_in.commander)
    logger.info(f"Command of {incident_id} transferred from {previous} to {transfer_in.commander}")
    return incident


@router.post("/incidents/{incident_id}/vehicles", response_model=IncidentSchema)
async def assign_vehicle(
    incident_id: str,
    vehicle_in: IncidentVehicleCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Assign a vehicle and its crew to an incident.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    return await add_vehicle(db, db_obj=incident, obj_in=vehicle_in)


@router.delete("/incidents/{incident_id}/vehicles/{name}", response_model=IncidentSchema)
async def release_vehicle(
    incident_id: str,
    name: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Remove a vehicle from an incident.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    return await remove_vehicle(db, db_obj=incident, name=name)


@router.put("/incidents/{incident_id}/chat-group", response_model=IncidentSchema)
async def update_chat_group(
    incident_id: str,
    link_in: ChatGroupLink,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Link an incident to a chat channel.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    channel = await get_channel_or_404(db, id=link_in.channel_id)
    return await link_chat_group(db, db_obj=incident, channel_id=channel.id)


@router.put("/incidents/{incident_id}/close", response_model=IncidentSchema)
async def close_incident_by_id(
    incident_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Close an incident.
    """
    incident = await get_incident_or_404(db, incident_id=incident_id)
    incident = await close_incident(db, db_obj=incident)
    logger.info(f"Incident {incident_id} closed by {current_user.username}")
    return incident
