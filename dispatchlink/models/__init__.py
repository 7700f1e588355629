from dispatchlink.models.user import User, UserRole
from dispatchlink.models.chat import Channel, ChatMessage, channel_members
from dispatchlink.models.incident import (
    Incident,
    IncidentPriority,
    IncidentState,
    IncidentType,
    IncidentVehicle,
    VehicleType,
)
from dispatchlink.models.hospital import Hospital
from dispatchlink.models.er_bed import ERBed, ERBedStatus
from dispatchlink.models.patient import (
    ERCategory,
    ERPriority,
    Patient,
    PatientERStatus,
    PatientLocation,
    PatientStatus,
)
