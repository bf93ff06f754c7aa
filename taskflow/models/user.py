"""User model definitions."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """User roles."""

    ADMIN = "admin"
    USER = "user"


class UserRef(BaseModel):
    """User display fields joined onto a work interval."""

    name: str
    role: Optional[UserRole] = None


class User(BaseModel):
    """User as consumed by analytics."""

    id: str = Field(alias="_id", serialization_alias="id")
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    specialization: Optional[str] = None

    model_config = {"populate_by_name": True}
