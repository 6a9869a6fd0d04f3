from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    id: int
    email: str
    name: str | None = None
    image: str | None = None
    provider: str
    role: str
    created_at: datetime | None = None
    email_verified_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ChangePasswordIn(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)
