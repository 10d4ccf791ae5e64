# quizapp/scoring.py
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Answer, DetailEntry, Question, SubmissionRecord, SubmitRequest


def _same_id(a, b) -> bool:
    # 1 and "1" are different questions, and so are True and 1
    return type(a) is type(b) and a == b


def find_choice(answers: Iterable[Answer], question_id) -> Optional[int]:
    """Return the chosen index for a question, or None when it was not attempted."""
    for answer in answers:
        if _same_id(answer.id, question_id):
            return answer.choice_index
    return None


def score_answers(questions: Sequence[Question], answers: Sequence[Answer]) -> Tuple[int, List[DetailEntry]]:
    """
    Score submitted answers against the question set.

    Every question in the set gets a detail entry, in question order.
    Answers for ids that are not in the set are ignored. A missing
    answer counts as chosen=None, which never matches the correct index.

    Returns:
        (score, details)
    """
    score = 0
    details = []

    for q in questions:
        chosen = find_choice(answers, q.id)
        is_correct = chosen is not None and chosen == q.correct_index
        if is_correct:
            score += 1

        details.append(DetailEntry(
            id=q.id,
            chosen=chosen,
            correct=q.correct_index,
            is_correct=is_correct,
        ))

    return score, details


def build_record(
    questions: Sequence[Question],
    request: SubmitRequest,
    now: Optional[datetime] = None,
    record_id: Optional[str] = None,
) -> SubmissionRecord:
    score, details = score_answers(questions, request.answers)
    now = now or datetime.now(timezone.utc)

    return SubmissionRecord(
        id=record_id or uuid.uuid4().hex,
        name=request.name or 'anonymous',
        email=request.email or '',
        score=score,
        total=len(questions),
        details=details,
        submitted_at=now.isoformat(),
    )
