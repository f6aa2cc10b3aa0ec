from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user from Supabase.
    """

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    app_metadata: dict = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @property
    def effective_role(self) -> str:
        """Application role from app_metadata, falling back to the JWT role."""
        return self.app_metadata.get("role") or self.role
