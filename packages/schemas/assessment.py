"""Assessment schemas for questions, take-test attempts, and grading results."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

QuestionType = Literal["single", "multiple"]


class AttemptStatus(str, Enum):
    """Lifecycle of a take-test record."""
    SUBMITTED = "submitted"  # raw choices durable, not scored yet
    GRADED = "graded"


class Question(BaseModel):
    """A test question with its answer key; read-only while grading."""
    id: int
    test_id: Optional[int] = None
    index: int = 0
    content: str = ""
    type: QuestionType = "single"
    answers: List[str] = Field(default_factory=list)
    correct_answers: List[str] = Field(default_factory=list)
    max_points: int = Field(default=1, ge=0)


class ChoiceIn(BaseModel):
    """Answer ids a taker selected for one question."""
    question: int = Field(..., description="Question id")
    answers: List[str] = Field(default_factory=list)


class ResolvedChoice(BaseModel):
    """A choice whose question reference has been replaced by the full question."""
    question: Question
    answers: List[str] = Field(default_factory=list)


class AttemptChoice(BaseModel):
    """A stored choice for the read path; `question` is None if it was deleted."""
    question_id: int
    question: Optional[Question] = None
    answers: List[str] = Field(default_factory=list)


class ChoiceScore(BaseModel):
    awarded: int
    correct: bool


class AttemptScore(BaseModel):
    """Aggregate grading result; `correctness[i]` belongs to choice `i`."""
    total_points: int
    correctness: List[bool]


class SubmitAttempt(BaseModel):
    """Body of a take-test submission. The taker is the authenticated caller."""
    test: int = Field(..., ge=1, description="Test id")
    submit_time: Optional[datetime] = None
    questions_order: List[str] = Field(default_factory=list)
    choose_answers: List[ChoiceIn] = Field(default_factory=list)


class AttemptDraft(BaseModel):
    """Everything the workflow needs to persist an ungraded attempt."""
    test_id: int
    user_id: str
    submit_time: datetime
    questions_order: List[str] = Field(default_factory=list)
    choose_answers: List[ChoiceIn] = Field(default_factory=list)


class AttemptCreated(BaseModel):
    take_test_id: int


class TestAttempt(BaseModel):
    """A take-test record as returned by the read path."""
    id: int
    test_id: int
    user_id: str
    submit_time: datetime
    questions_order: List[str] = Field(default_factory=list)
    choose_answers: List[AttemptChoice] = Field(default_factory=list)
    is_correct: Optional[List[bool]] = None
    points: Optional[int] = None
    status: AttemptStatus = AttemptStatus.SUBMITTED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AttemptSummary(BaseModel):
    """A take-test record without question details, for listings."""
    id: int
    test_id: int
    user_id: str
    submit_time: datetime
    points: Optional[int] = None
    is_correct: Optional[List[bool]] = None
    status: AttemptStatus


class ErrorResponse(BaseModel):
    error: str
    detail: str
    retryable: bool = False
    take_test_id: Optional[int] = None
