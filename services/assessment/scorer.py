# services/assessment/scorer.py
"""Scoring utilities for the Assessment service.

Functions:
- score_choice: all-or-nothing grading of one resolved choice.
- score_attempt: grades every choice of an attempt in order and sums points.

Both are pure: no I/O, no shared state, same input gives the same output, so
re-grading an attempt is always safe.
"""

from typing import Iterable, List, Sequence
from packages.schemas.assessment import AttemptScore, ChoiceScore, ResolvedChoice


def _unique(ids: Iterable[str]) -> List[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def score_choice(choice: ResolvedChoice) -> ChoiceScore:
    """Return full `max_points` when the selection equals the correct set, else 0.

    Selected and correct ids are de-duplicated first. A selection with a
    different size than the correct set never scores; there is no partial credit.
    """
    selected = _unique(choice.answers)
    correct = _unique(choice.question.correct_answers)
    if len(selected) != len(correct):
        return ChoiceScore(awarded=0, correct=False)

    correct_set = set(correct)
    hits = sum(1 for a in selected if a in correct_set)
    if hits == len(correct):
        return ChoiceScore(awarded=choice.question.max_points, correct=True)
    return ChoiceScore(awarded=0, correct=False)


def score_attempt(choices: Sequence[ResolvedChoice]) -> AttemptScore:
    """Grade choices in order; `correctness[i]` is the verdict for `choices[i]`."""
    total = 0
    correctness: List[bool] = []
    for choice in choices:
        s = score_choice(choice)
        total += s.awarded
        correctness.append(s.correct)
    return AttemptScore(total_points=total, correctness=correctness)
