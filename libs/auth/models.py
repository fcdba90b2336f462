import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, enum.Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"
    SERVICE = "service_role"


class AuthUser(BaseModel):
    """
    The authenticated actor, built from verified JWT claims.
    """

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Role = Role.TENANT

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
