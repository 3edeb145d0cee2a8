# Database models
from app.models.user import User
from app.models.property import Property
from app.models.prospect import Prospect

__all__ = [
    "User",
    "Property",
    "Prospect",
]
