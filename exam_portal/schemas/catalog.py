from pydantic import BaseModel


class CategoryIn(BaseModel):
    name: str | None = None
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    display_order: int | None = None


class TopicIn(BaseModel):
    name: str | None = None
    description: str | None = None
    category_id: str | None = None


class TopicUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    display_order: int | None = None
    category_id: str | None = None
