"""SQLAlchemy models for the Assessment service.

Defines four tables:
- Test: a test with an optional advertised maximum score.
- Question: a question with its answer key; may belong to a Test.
- TakeTest: one user's submission of a Test.
- TakeTestChoice: the answers selected for one question within a TakeTest.
"""

from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import DateTime, Integer, String, Text, ForeignKey

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Test(Base):
    """Test entity grouping questions.

    Attributes:
        id: Primary key.
        title: Human-readable title.
        max_points: Advertised maximum score, if the author declared one.
        questions: Relationship to owned Question rows.
    """

    __tablename__ = "tests"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    max_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    questions = relationship("Question", back_populates="test")


class Question(Base):
    """Question entity.

    Attributes:
        id: Primary key.
        test_id: Owning test, or None for a standalone question.
        index: Ordering index within the test.
        content: Question text.
        type: "single" or "multiple".
        answers: JSON-encoded list of available answer ids (stored as text).
        correct_answers: JSON-encoded list of correct answer ids (stored as text).
        max_points: Points awarded when the answer is fully correct.
    """

    __tablename__ = "questions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    test_id: Mapped[int | None] = mapped_column(ForeignKey("tests.id"), nullable=True)
    index: Mapped[int] = mapped_column(Integer, default=0)
    content: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[str] = mapped_column(String(16), default="single")
    answers: Mapped[str] = mapped_column(Text, default="[]")  # JSON encoded list
    correct_answers: Mapped[str] = mapped_column(Text, default="[]")  # JSON encoded list
    max_points: Mapped[int] = mapped_column(Integer, default=1)
    test = relationship("Test", back_populates="questions")


class TakeTest(Base):
    """A single submission of a test by a user.

    `points` and `is_correct` stay NULL until the attempt is graded.
    """

    __tablename__ = "take_tests"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # plain column: the referenced test may vanish after submission
    test_id: Mapped[int] = mapped_column(Integer, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    submit_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    questions_order: Mapped[str] = mapped_column(Text, default="[]")  # JSON encoded list
    is_correct: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON encoded list
    points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="submitted")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    choices = relationship(
        "TakeTestChoice",
        back_populates="take_test",
        order_by="TakeTestChoice.position",
        cascade="all, delete-orphan",
    )


class TakeTestChoice(Base):
    """Answers selected for one question of a TakeTest, at a fixed position."""

    __tablename__ = "take_test_choices"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    take_test_id: Mapped[int] = mapped_column(ForeignKey("take_tests.id"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    # plain column: a deleted question must surface as a resolution failure
    question_id: Mapped[int] = mapped_column(Integer)
    answers: Mapped[str] = mapped_column(Text, default="[]")  # JSON encoded list
    take_test = relationship("TakeTest", back_populates="choices")
