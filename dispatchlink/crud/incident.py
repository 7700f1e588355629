from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, InvalidStateError, NotFoundError
from dispatchlink.models import Incident, IncidentState, IncidentVehicle
from dispatchlink.schemas import IncidentCreate, IncidentUpdate, IncidentVehicleCreate


async def get_incident(db: AsyncSession, incident_id: str) -> Optional[Incident]:
    """
    Get an incident by its public incident ID.
    """
    result = await db.execute(select(Incident).filter(Incident.incident_id == incident_id))
    return result.scalars().first()


async def get_incident_or_404(db: AsyncSession, incident_id: str) -> Incident:
    incident = await get_incident(db, incident_id=incident_id)
    if not incident:
        raise NotFoundError(f"Incident {incident_id} not found")
    return incident


async def get_incidents(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    commander: Optional[str] = None,
    caller: Optional[str] = None,
    state: Optional[IncidentState] = None,
    channel_id: Optional[int] = None,
) -> List[Incident]:
    """
    Get multiple incidents with optional filtering.
    """
    query = select(Incident)
    if commander:
        query = query.filter(Incident.commander == commander)
    if caller:
        query = query.filter(Incident.caller == caller)
    if state:
        query = query.filter(Incident.incident_state == state)
    if channel_id is not None:
        query = query.filter(Incident.incident_call_group == channel_id)

    result = await db.execute(query.order_by(Incident.id).offset(skip).limit(limit))
    return result.scalars().all()


async def get_triage_incidents(db: AsyncSession, commander: str) -> List[Incident]:
    """
    Get the Triage incidents commanded by a user.
    """
    result = await db.execute(
        select(Incident)
        .filter(Incident.commander == commander, Incident.incident_state == IncidentState.TRIAGE)
        .order_by(Incident.id)
    )
    return result.scalars().all()


async def count_triage_incidents(db: AsyncSession, commanders: Iterable[str]) -> Dict[str, int]:
    """
    Count Triage incidents per commander. Commanders with none are reported as 0.
    """
    commanders = list(commanders)
    loads = {commander: 0 for commander in commanders}
    if not commanders:
        return loads

    result = await db.execute(
        select(Incident.commander, func.count(Incident.id))
        .filter(Incident.commander.in_(commanders), Incident.incident_state == IncidentState.TRIAGE)
        .group_by(Incident.commander)
    )
    for commander, count in result.all():
        loads[commander] = count
    return loads


async def transfer_incidents(db: AsyncSession, incidents: List[Incident], commander: str) -> List[Incident]:
    """
    Hand every incident over to a new commander in a single transaction.
    Nothing is transferred if the commit fails.
    """
    try:
        for incident in incidents:
            incident.commander = commander
            db.add(incident)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return incidents


async def create_incident(db: AsyncSession, obj_in: IncidentCreate, username: str) -> Incident:
    """
    Create a new incident. The creating user becomes owner and commander unless given.
    """
    incident_id = obj_in.incident_id or f"I{obj_in.caller}"
    if await get_incident(db, incident_id=incident_id):
        raise AlreadyExistsError(f"Incident {incident_id} already exists")

    db_obj = Incident(
        incident_id=incident_id,
        caller=obj_in.caller,
        incident_state=obj_in.incident_state,
        owner=obj_in.owner or username,
        commander=obj_in.commander or username,
        address=obj_in.address,
        type=obj_in.type,
        priority=obj_in.priority,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    await db.refresh(db_obj, attribute_names=["vehicles"])
    return db_obj


async def update_incident(
    db: AsyncSession, db_obj: Incident, obj_in: Union[IncidentUpdate, Dict[str, Any]]
) -> Incident:
    """
    Update an incident.
    """
    if isinstance(obj_in, dict):
        update_data = obj_in
    else:
        update_data = obj_in.model_dump(exclude_unset=True)

    for field in update_data:
        if update_data[field] is not None:
            setattr(db_obj, field, update_data[field])

    if db_obj.incident_state == IncidentState.CLOSED and db_obj.close_date is None:
        db_obj.close_date = datetime.utcnow()

    db.add(db_obj)
    await db.commit()
    return db_obj


async def add_vehicle(db: AsyncSession, db_obj: Incident, obj_in: IncidentVehicleCreate) -> Incident:
    """
    Assign a vehicle and its crew. Waiting and Triage incidents become Assigned.
    """
    if db_obj.incident_state == IncidentState.CLOSED:
        raise InvalidStateError(f"Incident {db_obj.incident_id} is closed")
    if any(vehicle.name == obj_in.name for vehicle in db_obj.vehicles):
        raise AlreadyExistsError(f"Vehicle {obj_in.name} is already assigned to {db_obj.incident_id}")

    db_obj.vehicles.append(
        IncidentVehicle(type=obj_in.type, name=obj_in.name, usernames=list(obj_in.usernames))
    )
    if db_obj.incident_state in (IncidentState.WAITING, IncidentState.TRIAGE):
        db_obj.incident_state = IncidentState.ASSIGNED

    db.add(db_obj)
    await db.commit()
    return db_obj


async def remove_vehicle(db: AsyncSession, db_obj: Incident, name: str) -> Incident:
    vehicle = next((v for v in db_obj.vehicles if v.name == name), None)
    if vehicle is None:
        raise NotFoundError(f"Vehicle {name} is not assigned to {db_obj.incident_id}")

    db_obj.vehicles.remove(vehicle)
    db.add(db_obj)
    await db.commit()
    return db_obj


async def get_vehicles_with_member(db: AsyncSession, username: str) -> List[IncidentVehicle]:
    """
    Get every incident vehicle whose crew roster contains the username.
    """
    # Text match narrows the scan; the exact membership check happens below
    result = await db.execute(
        select(IncidentVehicle)
        .filter(cast(IncidentVehicle.usernames, String).contains(username))
        .order_by(IncidentVehicle.id)
    )
    return [vehicle for vehicle in result.scalars().all() if username in (vehicle.usernames or [])]


async def remove_member_from_vehicles(db: AsyncSession, username: str) -> List[IncidentVehicle]:
    """
    Strip a username from every vehicle roster, leaving command untouched.
    """
    vehicles = await get_vehicles_with_member(db, username=username)
    if not vehicles:
        return []

    try:
        for vehicle in vehicles:
            # JSON columns are not mutation-tracked; assign a new list
            vehicle.usernames = [name for name in vehicle.usernames if name != username]
            db.add(vehicle)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return vehicles


async def link_chat_group(db: AsyncSession, db_obj: Incident, channel_id: int) -> Incident:
    db_obj.incident_call_group = channel_id
    db.add(db_obj)
    await db.commit()
    return db_obj


async def close_incident(db: AsyncSession, db_obj: Incident) -> Incident:
    if db_obj.incident_state == IncidentState.CLOSED:
        raise InvalidStateError(f"Incident {db_obj.incident_id} is already closed")

    db_obj.incident_state = IncidentState.CLOSED
    db_obj.close_date = datetime.utcnow()
    db.add(db_obj)
    await db.commit()
    return db_obj
