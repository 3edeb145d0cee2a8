from sqlalchemy import Column, String, Boolean, DateTime, Integer, JSON
from sqlalchemy.sql import func
from app.database.connection import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    country_code = Column(String(2), nullable=False, default="MA")

    # 1Confirmed integration
    confirmed_user_id = Column(Integer, unique=True, nullable=True)
    confirmed_token = Column(String, nullable=True, index=True)

    language = Column(String, nullable=True)
    phone_verified_at = Column(DateTime(timezone=True), nullable=True)
    two_factor_enabled = Column(Boolean, default=False)
    two_factor_verified = Column(Boolean, default=False)
    first_message_wizard_completed = Column(Boolean, default=False)
    roles = Column(JSON, nullable=False, default=lambda: ["user"])
    credit = Column(Integer, nullable=False, default=500)
    subscription_id = Column(String, nullable=True)
    accounts = Column(JSON, nullable=False, default=list)
    custom_credit = Column(JSON, nullable=False, default=list)

    # Legacy payload kept for profile responses, not used by any feature
    aquarium_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
