from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Index, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.connection import Base


PROPERTY_TYPES = ("villa", "apartment", "house", "commercial")
PROPERTY_STATUSES = ("available", "sold", "pending")


class Property(Base):
    __tablename__ = "properties"

    id = Column(String, primary_key=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    type = Column(String, nullable=False, index=True)
    price = Column(Float, nullable=False, index=True)
    location = Column(String, nullable=False)
    status = Column(String, nullable=False, default="available")
    images = Column(JSON, nullable=False, default=list)  # relative /uploads paths or URLs, max 3
    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Integer, nullable=False)
    area = Column(Float, nullable=False)
    description = Column(String(1000), nullable=True)
    features = Column(JSON, nullable=False, default=list)
    added_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_date = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", backref="properties")

    __table_args__ = (
        Index('idx_property_owner_status', 'owner_id', 'status'),
    )
