from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.connection import Base


PROSPECT_STATUSES = ("hot", "warm", "cold", "active")
INTERACTION_TYPES = ("call", "email", "whatsapp", "meeting", "note")


def default_preferences() -> dict:
    return {
        "budget": {"min": 0, "max": 0},
        "property_types": [],
        "locations": [],
        "bedrooms": 0,
        "bathrooms": 0,
        "area": {"min": None, "max": None},
        "features": [],
    }


class Prospect(Base):
    __tablename__ = "prospects"

    id = Column(String, primary_key=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active", index=True)
    source = Column(String, nullable=False, default="unknown")
    preferences = Column(JSON, nullable=False, default=default_preferences)
    matched_property_ids = Column(JSON, nullable=False, default=list)  # denormalized, refreshed by campaigns
    interactions = Column(JSON, nullable=False, default=list)
    last_contact = Column(DateTime(timezone=True), server_default=func.now())
    notes = Column(String, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", backref="prospects")

    __table_args__ = (
        Index('idx_prospect_owner_active', 'owner_id', 'is_active'),
        Index('idx_prospect_owner_email', 'owner_id', 'email'),
    )
