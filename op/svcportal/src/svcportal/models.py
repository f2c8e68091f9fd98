# models.py
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ADMIN_ROLE = "admin"
PROVIDER_ROLES = ("provider", "service_owner")

RequestStatus = Literal["pending", "approved", "rejected"]
TERMINAL_STATUSES = ("approved", "rejected")


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> str:
        return "approved" if self is Decision.APPROVE else "rejected"


class User(BaseModel):
    # backend profiles carry more than we read; keep it round-trippable
    model_config = ConfigDict(extra="allow")

    id: int | str
    name: str | None = None
    email: str | None = None
    role: str = "user"
    avatar: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def is_provider(self) -> bool:
        return self.role in PROVIDER_ROLES


class ProviderRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str
    user_id: int | str | None = None
    user: User | None = None
    document: str | None = None
    status: RequestStatus = "pending"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class MenuItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str | None = None   # unassigned until the backend creates it
    service_page_id: int | str | None = None
    user_id: int | str | None = None
    name: str
    slug: str | None = None


class ServicePage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    user_id: int | str | None = None
    content: str | None = None
    logo: str | None = None
    banner: str | None = None
    menu: list[MenuItem] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---- wire payloads ----

class LoginRequest(BaseModel):
    email: str
    password: str

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    password_confirmation: str   # field name the backend validates against

class AuthResponse(BaseModel):
    user: User
    token: str

class TokenResponse(BaseModel):
    token: str

class MeResponse(BaseModel):
    user: User

class StatusChange(BaseModel):
    status: Literal["approved", "rejected"]

class MenuCreate(BaseModel):
    name: str
    slug: str | None = None
