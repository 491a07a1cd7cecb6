from typing import Literal

from pydantic import BaseModel, Field


class MaterialCategoryIn(BaseModel):
    name: str
    description: str | None = None


class MaterialIn(BaseModel):
    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    pdf_url: str | None = None
    category_id: str | None = None
    associated_test_id: str | None = None
    status: Literal["draft", "published"] = "draft"


class MaterialUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    pdf_url: str | None = None
    category_id: str | None = None
    associated_test_id: str | None = None
    status: Literal["draft", "published"] | None = None
