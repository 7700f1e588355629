from datetime import datetime
from typing import Dict, Optional

from dispatchlink.core.errors import InvalidStateError
from dispatchlink.models import ERBed, ERBedStatus

# Beds only ever move one step forward around this cycle
NEXT_STATUS: Dict[ERBedStatus, ERBedStatus] = {
    ERBedStatus.READY: ERBedStatus.REQUESTED,
    ERBedStatus.REQUESTED: ERBedStatus.IN_USE,
    ERBedStatus.IN_USE: ERBedStatus.DISCHARGED,
    ERBedStatus.DISCHARGED: ERBedStatus.READY,
}

TIMESTAMP_FIELDS: Dict[ERBedStatus, str] = {
    ERBedStatus.REQUESTED: "requested_at",
    ERBedStatus.IN_USE: "occupied_at",
    ERBedStatus.DISCHARGED: "discharged_at",
    ERBedStatus.READY: "ready_at",
}


def can_transition(current: ERBedStatus, target: ERBedStatus) -> bool:
    return NEXT_STATUS[ERBedStatus(current)] == target


def transition(bed: ERBed, target: ERBedStatus, now: Optional[datetime] = None) -> ERBed:
    """
    Move a bed to `target`, stamping the matching timestamp.

    Returning to READY frees the bed, so the patient is cleared; a discharged
    bed keeps its patient for the record.
    """
    target = ERBedStatus(target)
    current = ERBedStatus(bed.status)
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Invalid ER bed status transition from {current.value} to {target.value}"
        )

    bed.status = target
    setattr(bed, TIMESTAMP_FIELDS[target], now or datetime.utcnow())
    if target == ERBedStatus.READY:
        bed.patient_id = None
    return bed
