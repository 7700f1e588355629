from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer, String
import enum

from dispatchlink.db.base_class import Base


class UserRole(str, enum.Enum):
    CITIZEN = "Citizen"
    DISPATCH = "Dispatch"
    POLICE = "Police"
    FIRE = "Fire"
    NURSE = "Nurse"
    CITY_DIRECTOR = "City Director"
    POLICE_CHIEF = "Police Chief"
    FIRE_CHIEF = "Fire Chief"
    ADMINISTRATOR = "Administrator"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(
        Enum(UserRole, values_callable=enum_values, name="userrole"),
        default=UserRole.CITIZEN,
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Only meaningful for Police and Fire; see schemas.user.RoleAssignment
    assigned_city = Column(String, nullable=True)
    assigned_car = Column(String, nullable=True)
    assigned_truck = Column(String, nullable=True)
    assigned_vehicle_timestamp = Column(DateTime, nullable=True)

    previous_latitude = Column(Float, default=0, nullable=False)
    previous_longitude = Column(Float, default=0, nullable=False)
