# services/assessment/routes.py
"""Take-test endpoints mounted under /v1/submit.

Role gates come from `require_roles`; handlers only sequence calls into the
`GradingWorkflow` stored on `app.state`.
"""

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Path, Request, status

from packages.common.auth import User
from packages.common.rbac import ANY_ROLE, Role, require_roles
from packages.schemas.assessment import (
    AttemptCreated,
    AttemptDraft,
    AttemptScore,
    AttemptSummary,
    SubmitAttempt,
    TestAttempt,
)
from .workflow import GradingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/submit", tags=["take-test"])

_takers = require_roles(Role.ADMIN, Role.CREATOR, Role.USER)
_graders = require_roles(Role.ADMIN, Role.CREATOR)
_admins = require_roles(Role.ADMIN)
_anyone = require_roles(*ANY_ROLE)


def get_workflow(request: Request) -> GradingWorkflow:
    return request.app.state.workflow


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=AttemptCreated,
    summary="Submit and grade a take test",
)
async def submit_take_test(
    payload: SubmitAttempt,
    user: User = Depends(_takers),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> AttemptCreated:
    draft = AttemptDraft(
        test_id=payload.test,
        user_id=user.sub,
        submit_time=payload.submit_time or datetime.now(timezone.utc),
        questions_order=payload.questions_order,
        choose_answers=payload.choose_answers,
    )
    take_test_id = await workflow.submit(draft)
    return AttemptCreated(take_test_id=take_test_id)


# declared before /{take_test_id} so "ungraded" is not parsed as an id
@router.get("/ungraded", response_model=List[AttemptSummary], summary="Attempts stored without a score")
async def list_ungraded(
    _: User = Depends(_admins),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> List[AttemptSummary]:
    return await workflow.list_attempts(ungraded_only=True)


@router.get("/user/{user_id}", response_model=List[AttemptSummary], summary="Take tests of a user")
async def list_by_user(
    user_id: str = Path(..., min_length=1),
    _: User = Depends(_anyone),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> List[AttemptSummary]:
    return await workflow.list_attempts(user_id=user_id)


@router.get("/test/{test_id}", response_model=List[AttemptSummary], summary="Take tests of a test")
async def list_by_test(
    test_id: int = Path(..., ge=1),
    _: User = Depends(_anyone),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> List[AttemptSummary]:
    return await workflow.list_attempts(test_id=test_id)


@router.get("/{take_test_id}", response_model=TestAttempt, summary="Get take test by id")
async def get_take_test(
    take_test_id: int = Path(..., ge=1),
    _: User = Depends(_takers),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> TestAttempt:
    return await workflow.get_attempt(take_test_id)


@router.post("/{take_test_id}/regrade", response_model=AttemptScore, summary="Re-grade a take test")
async def regrade_take_test(
    take_test_id: int = Path(..., ge=1),
    user: User = Depends(_graders),
    workflow: GradingWorkflow = Depends(get_workflow),
) -> AttemptScore:
    logger.info(f"Regrade take test {take_test_id} requested by {user.sub}")
    return await workflow.regrade(take_test_id)
