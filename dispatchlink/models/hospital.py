from sqlalchemy import Column, Integer, String, Text

from dispatchlink.db.base_class import Base


class Hospital(Base):
    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(String(64), unique=True, index=True, nullable=False)
    hospital_name = Column(String(255), nullable=False)
    hospital_address = Column(String(255), nullable=True)
    hospital_description = Column(Text, nullable=True)
    city_id = Column(String(64), nullable=True)
    capacity = Column(Integer, default=0, nullable=False)
    total_number_er_beds = Column(Integer, default=0, nullable=False)
