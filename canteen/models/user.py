"""
User models
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class Role(str, Enum):
    """Account roles"""
    EMPLOYEE = "EMPLOYEE"
    ADMIN_USER = "ADMIN_USER"    # manages accounts, payroll reports
    ADMIN_MEAL = "ADMIN_MEAL"    # manages the menu, daily exports


# Every account is an employee who eats
ORDERING_ROLES = frozenset({Role.EMPLOYEE, Role.ADMIN_USER, Role.ADMIN_MEAL})
DAILY_REPORT_ROLES = frozenset({Role.ADMIN_USER, Role.ADMIN_MEAL})
MONTHLY_REPORT_ROLES = frozenset({Role.ADMIN_USER})
HISTORY_ROLES = frozenset({Role.ADMIN_USER, Role.ADMIN_MEAL})


class User(BaseEntity, TimestampMixin):
    """Directory entry"""
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Login name")
    first_name: str = Field("", description="First name")
    last_name: str = Field("", description="Last name")
    personal_number: Optional[str] = Field(None, description="Payroll personal number")
    role: Role = Field(Role.EMPLOYEE, description="Role")
    is_deleted: bool = Field(False, description="Soft-deleted account")


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    first_name: str = ""
    last_name: str = ""
    personal_number: Optional[str] = None
    role: Role = Role.EMPLOYEE


class Principal(BaseModel):
    """Authenticated caller as supplied by the identity provider"""
    user_id: int
    role: Role

    model_config = {"frozen": True}

    def has_role(self, roles) -> bool:
        return self.role in roles
