from dispatchlink.schemas.user import (
    User, UserCreate, UserWithStatus, Location, RoleAssignment, PoliceAssignment, FireAssignment,
    Token, LogoutRequest, LogoutResponse, AvailablePersonnel, VehicleRelease,
)
from dispatchlink.schemas.incident import (
    Incident, IncidentCreate, IncidentUpdate, IncidentVehicle, IncidentVehicleCreate,
    CommanderTransfer, ChatGroupLink,
)
from dispatchlink.schemas.hospital import (
    Hospital, HospitalCreate, ERBed, BedRequest, BedStatusUpdate, AvailableBeds, BedPatient,
    PatientsByCategory,
)
from dispatchlink.schemas.chat import Channel, ChannelCreate, ChannelMember, ChatMessage, ChatMessageCreate, MessageAcknowledge
from dispatchlink.schemas.patient import (
    Patient, PatientBase, PatientCreate, PatientStatus, PatientStatusUpdate, ExpandedPatient, AssignedPatients,
)
