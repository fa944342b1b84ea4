"""Error taxonomy for the submission workflow.

Validation errors are raised before anything is stored. Resolution errors
leave the attempt stored but unscored. Persistence errors are retryable: every
step after the first can be repeated given the attempt id.
"""

from typing import Optional


class AssessmentError(Exception):
    """Base class; `take_test_id` is set once the draft attempt is durable."""

    kind = "assessment_error"
    retryable = False

    def __init__(self, message: str, take_test_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.take_test_id = take_test_id


class AttemptValidationError(AssessmentError):
    kind = "validation_error"


class ReferenceResolutionError(AssessmentError):
    kind = "reference_error"


class QuestionNotFoundError(ReferenceResolutionError):
    def __init__(self, question_id: int, take_test_id: Optional[int] = None) -> None:
        super().__init__(f"question {question_id} not found", take_test_id)
        self.question_id = question_id


class TestNotFoundError(ReferenceResolutionError):
    def __init__(self, test_id: int, take_test_id: Optional[int] = None) -> None:
        super().__init__(f"test {test_id} not found", take_test_id)
        self.test_id = test_id


class AttemptNotFoundError(AssessmentError):
    kind = "not_found"

    def __init__(self, take_test_id: int) -> None:
        super().__init__(f"take test {take_test_id} does not exist", take_test_id)


class PersistenceError(AssessmentError):
    kind = "persistence_error"
    retryable = True


class StoreTimeoutError(PersistenceError):
    kind = "store_timeout"
