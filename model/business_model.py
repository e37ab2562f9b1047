from datetime import datetime
from sqlalchemy import Column, String, Boolean, Integer, DateTime, JSON
from db.database import Base


class BusinessConfig(Base):
    __tablename__ = "business_configs"

    id = Column(String(50), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    logo_url = Column(String(255), nullable=True)
    primary_color = Column(String(20), default="#3B82F6")
    secondary_color = Column(String(20), default="#8B5CF6")
    departments = Column(JSON, default=list)
    leave_types = Column(JSON, default=list)
    working_days = Column(JSON, default=list)
    time_zone = Column(String(50), default="UTC")
    currency = Column(String(3), default="USD")
    date_format = Column(String(20), default="MM/DD/YYYY")
    language = Column(String(5), default="en")
    features = Column(JSON, default=dict)
    trial_enabled = Column(Boolean, default=True)
    trial_days = Column(Integer, default=14)
    trial_features = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
