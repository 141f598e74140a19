"""Caller identity supplied by the external identity service."""

from pydantic import BaseModel, Field


class CallerIdentity(BaseModel):
    """Verified caller, threaded explicitly into every authoring call."""

    id: str = Field(..., min_length=1)
    email: str
    role: str = "user"

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
