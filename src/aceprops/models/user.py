"""
Modelo de Usuario

Perfil de 'user_profiles': rol del usuario y datos de contacto.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserType(str, Enum):
    ADMIN = "admin"
    LANDLORD = "landlord"
    INVESTOR = "investor"


class UserProfile(BaseModel):
    """Usuario autenticado con su rol."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="UUID de Supabase Auth")
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    user_type: Optional[UserType] = Field(None, description="admin, landlord o investor")
    notification_enabled: bool = Field(True, description="Acepta emails de matches")

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    @property
    def is_landlord(self) -> bool:
        return self.user_type == UserType.LANDLORD

    @property
    def is_investor(self) -> bool:
        return self.user_type == UserType.INVESTOR

    @classmethod
    def from_db_row(cls, row: dict) -> "UserProfile":
        user_type = row.get("user_type")
        return cls(
            id=row["id"],
            email=row.get("email"),
            full_name=row.get("full_name"),
            phone=row.get("phone"),
            company_name=row.get("company_name"),
            user_type=user_type if user_type in UserType._value2member_map_ else None,
            notification_enabled=row.get("notification_enabled") is not False,
        )
