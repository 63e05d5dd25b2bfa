# services/submissions.py
import logging
from typing import Dict, List, Optional

from models.submission import Submission
from services.errors import ValidationError

logger = logging.getLogger(__name__)


async def submit_worksheet(api, worksheet_id: str, answers: Dict[str, object]) -> Optional[Submission]:
    if not worksheet_id:
        raise ValidationError([("worksheetId", "Worksheet is required")])
    submission = await api.submit({"worksheetId": worksheet_id, "answers": answers or {}})
    logger.info(f"Submitted worksheet {worksheet_id}")
    return submission


async def list_for_student(api, student_id: str) -> List[Submission]:
    return await api.submissions_for_student(student_id)


async def list_for_worksheet(api, worksheet_id: str) -> List[Submission]:
    return await api.submissions_for_worksheet(worksheet_id)


async def grade_submission(api, submission_id: str, score: float, feedback: Optional[str] = None) -> Optional[Submission]:
    if score is None or not 0 <= score <= 100:
        raise ValidationError([("score", "Score must be between 0 and 100")])
    body = {"score": score}
    if feedback and feedback.strip():
        body["feedback"] = feedback.strip()
    return await api.grade_submission(submission_id, body)


def submission_status(submissions: List[Submission], worksheet_id: str) -> dict:
    """completed/available for one worksheet. Assumes one submission per pair; the first match wins."""
    for submission in submissions:
        if submission.worksheetId == worksheet_id:
            return {"status": "completed", "score": submission.score}
    return {"status": "available", "score": None}


def average_score(submissions: List[Submission]) -> int:
    if not submissions:
        return 0
    total = sum(s.score or 0 for s in submissions)
    return round(total / len(submissions))
