"""
Base data models
Shared model base classes and fields
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class TimestampMixin(BaseModel):
    """Timestamp mixin"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """Base entity model"""

    model_config = {"from_attributes": True, "use_enum_values": True}
