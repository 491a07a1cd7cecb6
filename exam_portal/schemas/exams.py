from typing import Literal

from pydantic import BaseModel, Field


TestStatus = Literal["draft", "published", "coming_soon"]


class OptionIn(BaseModel):
    label: str
    is_correct: bool = False


class QuestionIn(BaseModel):
    text: str
    points: float = 1
    # None = 0.25 when the test uses negative marking, else 0
    negative_points: float | None = None
    options: list[OptionIn] = Field(default_factory=list)


class TestIn(BaseModel):
    __test__ = False  # not a pytest test class

    title: str
    description: str | None = None
    duration_minutes: int = Field(30, ge=1)
    status: TestStatus = "draft"
    shuffle_questions: bool = True
    shuffle_options: bool = True
    negative_marking: bool = False
    difficulty: str = "medium"
    topic_id: str | None = None
    category_id: str | None = None
    questions: list[QuestionIn] = Field(default_factory=list)


class TestUpdate(BaseModel):
    __test__ = False  # not a pytest test class

    title: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=1)
    status: TestStatus | None = None
    shuffle_questions: bool | None = None
    shuffle_options: bool | None = None
    negative_marking: bool | None = None
    difficulty: str | None = None
    topic_id: str | None = None
    category_id: str | None = None
    # None = keep questions as they are; a list replaces all of them
    questions: list[QuestionIn] | None = None


class AnswerIn(BaseModel):
    question_id: str
    chosen_option_id: str | None = None


class SubmitIn(BaseModel):
    answers: list[AnswerIn] = Field(default_factory=list)
    time_remaining: int | None = Field(None, ge=0)
