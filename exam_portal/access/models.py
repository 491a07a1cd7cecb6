"""
DTO access control: UserAccess (input of the can_access_* checks), grants, ContentTier.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator


class ContentTier(str, Enum):
    """Bucket a category falls into, inferred from its display name."""

    SAMPLE = "sample"
    PREMIUM = "premium"
    STANDARD = "standard"


# ----- Explicit per-item grants (token form: "<kind>:<identifier>") -----


class CategoryGrant(BaseModel):
    kind: Literal["category"] = "category"
    name: str

    model_config = {"frozen": True}


class MaterialGrant(BaseModel):
    kind: Literal["material"] = "material"
    id: str

    model_config = {"frozen": True}


class TestGrant(BaseModel):
    __test__ = False  # not a pytest test class

    kind: Literal["test"] = "test"
    id: str

    model_config = {"frozen": True}


Grant = Annotated[Union[CategoryGrant, MaterialGrant, TestGrant], Field(discriminator="kind")]


def parse_grant(token: str) -> CategoryGrant | MaterialGrant | TestGrant | None:
    """Parse one "kind:identifier" token. Unknown kinds and empty identifiers give None."""
    kind, sep, ident = token.partition(":")
    if not sep or not ident:
        return None
    kind = kind.strip().lower()
    if kind == "category":
        return CategoryGrant(name=ident.lower())
    if kind == "material":
        return MaterialGrant(id=ident)
    if kind == "test":
        return TestGrant(id=ident)
    return None


# ----- Resolved entitlements (built by resolve_access, read by policy) -----


class UserAccess(BaseModel):
    """Per-request entitlements of one user. Never persisted or cached."""

    has_premium_plan: bool = False
    has_standard_plan: bool = False
    specific_grants: tuple[Grant, ...] = ()

    model_config = {"frozen": True}

    @field_validator("specific_grants", mode="before")
    @classmethod
    def parse_tokens(cls, v):
        """Accept raw "kind:id" tokens alongside already parsed grants."""
        if v is None:
            return ()
        parsed = []
        for item in v:
            if isinstance(item, str):
                grant = parse_grant(item)
                if grant is not None:
                    parsed.append(grant)
            else:
                parsed.append(item)
        return tuple(parsed)

    @classmethod
    def closed(cls) -> "UserAccess":
        """Most restrictive value: no plan, no grants."""
        return cls()

    def category_grants(self) -> list[CategoryGrant]:
        return [g for g in self.specific_grants if isinstance(g, CategoryGrant)]

    def has_material_grant(self, material_id: str) -> bool:
        return any(isinstance(g, MaterialGrant) and g.id == material_id for g in self.specific_grants)

    def has_test_grant(self, test_id: str) -> bool:
        return any(isinstance(g, TestGrant) and g.id == test_id for g in self.specific_grants)


# ----- Rows read from the subscription store -----


class SubscriptionRow(BaseModel):
    plan_id: str
    status: str
    expires_at: datetime | None = None

    model_config = {"frozen": True}


class PlanRow(BaseModel):
    id: str
    name: str

    model_config = {"frozen": True}
