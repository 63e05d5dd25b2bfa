# services/dashboard.py
import asyncio
import logging
from typing import Any, Awaitable, List

from services.errors import Unauthorized
from services.submissions import average_score, submission_status

logger = logging.getLogger(__name__)


async def fetch_all(*aws: Awaitable) -> List[Any]:
    """Run fetches concurrently, all-or-nothing.

    The first failure cancels the fetches still in flight and is re-raised,
    so a dashboard is either rendered from complete data or not at all.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            raise task.exception()
    return [task.result() for task in tasks]


async def load_teacher_dashboard(api, session) -> dict:
    if not session.is_authenticated:
        raise Unauthorized()
    worksheets, groups = await fetch_all(api.list_worksheets(), api.list_groups())

    # A student in several groups counts once
    students = set()
    for group in groups:
        students.update(group.member_ids)

    logger.info(f"Teacher dashboard loaded: {len(worksheets)} worksheets, {len(groups)} groups")
    return {
        "user": session.user,
        "worksheets": worksheets,
        "groups": groups,
        "stats": {
            "totalWorksheets": len(worksheets),
            "publishedWorksheets": sum(1 for w in worksheets if w.isPublished),
            "totalGroups": len(groups),
            "totalStudents": len(students),
        },
    }


async def load_student_dashboard(api, session) -> dict:
    if not session.is_authenticated or not session.user_id:
        raise Unauthorized()
    worksheets, submissions = await fetch_all(
        api.list_worksheets(), api.submissions_for_student(session.user_id)
    )
    items = [{"worksheet": w, **submission_status(submissions, w.id)} for w in worksheets]
    return {
        "user": session.user,
        "worksheets": items,
        "submissions": submissions,
        "stats": {
            "total": len(worksheets),
            "completed": len(submissions),
            "avgScore": average_score(submissions),
        },
    }
