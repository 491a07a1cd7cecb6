from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class StudentIn(BaseModel):
    email: str
    full_name: str


class StudentUpdate(BaseModel):
    email: str | None = None
    full_name: str | None = None


class GrantPlanRequest(BaseModel):
    email: str
    plan_name: str
    create_user_if_missing: bool = False
    full_name: str | None = None


class SubscriptionUpdate(BaseModel):
    status: Literal["active", "inactive", "expired"] | None = None
    expires_at: datetime | None = None


class FixAccessRequest(BaseModel):
    email: str
