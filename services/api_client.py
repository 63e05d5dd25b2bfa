# services/api_client.py
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

import config
from models.assignment import GroupAssignment
from models.group import Group
from models.submission import Submission
from models.user import User
from models.workbook import Workbook
from models.worksheet import Worksheet
from services.errors import NetworkFailure, NotFound, RequestAborted, ServerRejection, Unauthorized

logger = logging.getLogger(__name__)


class AbortSignal:
    """Cancels the requests it is passed to. One signal can cover many calls."""

    def __init__(self):
        self._event = asyncio.Event()

    def abort(self) -> None:
        self._event.set()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


def _message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _data(envelope: Any) -> dict:
    data = envelope.get("data", envelope) if isinstance(envelope, dict) else envelope
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Unexpected response envelope from backend: {type(data).__name__} data")
        raise ServerRejection(502, "Unexpected response from server")
    return data


def _parse(model, raw):
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        logger.error(f"Unexpected {model.__name__} payload from backend: {e}")
        raise ServerRejection(502, "Unexpected response from server")


def _parse_list(model, raw) -> list:
    return [_parse(model, item) for item in (raw or [])]


class ApiClient:
    """Async client for the LMS REST backend.

    Attaches the session's bearer token to every call, unwraps the
    {"success", "message", "data"} envelope and maps failures onto the
    portal's error taxonomy. A 401 anywhere tears the session down.
    """

    def __init__(self, session, base_url: str = None, timeout: float = None, transport=None):
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=base_url or config.API_URL,
            timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, coro, abort: Optional[AbortSignal]):
        if abort is None:
            return await coro
        if abort.aborted:
            coro.close()
            raise RequestAborted()
        request_task = asyncio.ensure_future(coro)
        abort_task = asyncio.ensure_future(abort.wait())
        try:
            done, _ = await asyncio.wait({request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            abort_task.cancel()
            if not request_task.done():
                request_task.cancel()
        if request_task in done:
            return request_task.result()
        raise RequestAborted()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
        files: Optional[dict] = None,
        abort: Optional[AbortSignal] = None,
    ) -> Any:
        """Send one call and return the decoded response envelope."""
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        logger.info(f"{method} {path}")
        try:
            response = await self._send(
                self._client.request(method, path, json=json, params=params, data=data, files=files, headers=headers),
                abort,
            )
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed without a response: {e}")
            raise NetworkFailure() from e

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if response.status_code == 401:
            logger.warning(f"{method} {path} returned 401, clearing session")
            self.session.teardown("unauthorized")
            raise Unauthorized(_message(body))
        if response.status_code == 404:
            raise NotFound(_message(body))
        if response.status_code >= 400:
            message = _message(body)
            logger.warning(f"{method} {path} rejected with {response.status_code}: {message}")
            raise ServerRejection(response.status_code, message)
        return body if body is not None else {}

    # --- Auth ---

    async def login(self, email: str, password: str, abort: AbortSignal = None) -> Dict[str, Any]:
        data = _data(await self.request("POST", "/auth/login", json={"email": email, "password": password}, abort=abort))
        token = data.get("token") or data.get("accessToken") or data.get("access_token")
        if not token:
            raise ServerRejection(502, "Login response did not include a token")
        return {"token": token, "user": data.get("user")}

    async def register(self, body: dict, abort: AbortSignal = None) -> Dict[str, Any]:
        data = _data(await self.request("POST", "/auth/register", json=body, abort=abort))
        return {"token": data.get("token") or data.get("accessToken"), "user": data.get("user")}

    async def get_me(self, abort: AbortSignal = None) -> User:
        data = _data(await self.request("GET", "/auth/me", abort=abort))
        return _parse(User, data.get("user", data))

    # --- Worksheets ---

    async def list_worksheets(self, params: dict = None, abort: AbortSignal = None) -> List[Worksheet]:
        data = _data(await self.request("GET", "/worksheets", params=params, abort=abort))
        return _parse_list(Worksheet, data.get("worksheets"))

    async def get_worksheet(self, worksheet_id: str, abort: AbortSignal = None) -> Worksheet:
        data = _data(await self.request("GET", f"/worksheets/{worksheet_id}", abort=abort))
        return _parse(Worksheet, data.get("worksheet", data))

    async def get_worksheet_file(self, worksheet_id: str, abort: AbortSignal = None) -> dict:
        return _data(await self.request("GET", f"/worksheets/{worksheet_id}/file", abort=abort))

    async def create_worksheet(self, payload: dict, abort: AbortSignal = None) -> Optional[Worksheet]:
        data = _data(await self.request("POST", "/worksheets", json=payload, abort=abort))
        raw = data.get("worksheet")
        return _parse(Worksheet, raw) if raw else None

    async def update_worksheet(self, worksheet_id: str, payload: dict, abort: AbortSignal = None) -> Optional[Worksheet]:
        data = _data(await self.request("PUT", f"/worksheets/{worksheet_id}", json=payload, abort=abort))
        raw = data.get("worksheet")
        return _parse(Worksheet, raw) if raw else None

    async def delete_worksheet(self, worksheet_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/worksheets/{worksheet_id}", abort=abort)

    async def toggle_publish(self, worksheet_id: str, abort: AbortSignal = None) -> Optional[Worksheet]:
        data = _data(await self.request("POST", f"/worksheets/{worksheet_id}/publish", abort=abort))
        raw = data.get("worksheet")
        return _parse(Worksheet, raw) if raw else None

    async def upload_worksheet(
        self, fields: dict, filename: str, content: bytes, content_type: str, abort: AbortSignal = None
    ) -> Optional[Worksheet]:
        data = _data(
            await self.request(
                "POST",
                "/worksheets/upload",
                data=fields,
                files={"file": (filename, content, content_type)},
                abort=abort,
            )
        )
        raw = data.get("worksheet")
        return _parse(Worksheet, raw) if raw else None

    async def save_google_link(self, body: dict, abort: AbortSignal = None) -> Optional[Worksheet]:
        data = _data(await self.request("POST", "/worksheets/google-link", json=body, abort=abort))
        raw = data.get("worksheet")
        return _parse(Worksheet, raw) if raw else None

    # --- Groups ---

    async def list_groups(self, abort: AbortSignal = None) -> List[Group]:
        data = _data(await self.request("GET", "/groups", abort=abort))
        return _parse_list(Group, data.get("groups"))

    async def create_group(self, body: dict, abort: AbortSignal = None) -> Optional[Group]:
        data = _data(await self.request("POST", "/groups", json=body, abort=abort))
        raw = data.get("group")
        return _parse(Group, raw) if raw else None

    async def delete_group(self, group_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/groups/{group_id}", abort=abort)

    async def add_group_students(self, group_id: str, student_ids: Iterable[str], abort: AbortSignal = None) -> None:
        await self.request("POST", f"/groups/{group_id}/students", json={"studentIds": list(student_ids)}, abort=abort)

    async def remove_group_student(self, group_id: str, student_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/groups/{group_id}/students/{student_id}", abort=abort)

    async def available_students(self, abort: AbortSignal = None) -> List[User]:
        data = _data(await self.request("GET", "/groups/available-students", abort=abort))
        return _parse_list(User, data.get("students"))

    async def join_group(self, join_code: str, abort: AbortSignal = None) -> Dict[str, Any]:
        envelope = await self.request("POST", "/groups/join", json={"joinCode": join_code}, abort=abort)
        data = _data(envelope)
        raw = data.get("group")
        return {"message": _message(envelope), "group": _parse(Group, raw) if raw else None}

    async def list_group_assignments(self, group_id: str, abort: AbortSignal = None) -> List[GroupAssignment]:
        data = _data(await self.request("GET", f"/groups/{group_id}/assignments", abort=abort))
        return _parse_list(GroupAssignment, data.get("assignments"))

    async def assign_worksheet(self, group_id: str, body: dict, abort: AbortSignal = None) -> Optional[GroupAssignment]:
        data = _data(await self.request("POST", f"/groups/{group_id}/assignments", json=body, abort=abort))
        raw = data.get("assignment")
        return _parse(GroupAssignment, raw) if raw else None

    async def remove_group_assignment(self, group_id: str, assignment_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/groups/{group_id}/assignments/{assignment_id}", abort=abort)

    # --- Submissions ---

    async def submit(self, body: dict, abort: AbortSignal = None) -> Optional[Submission]:
        data = _data(await self.request("POST", "/submissions", json=body, abort=abort))
        raw = data.get("submission")
        return _parse(Submission, raw) if raw else None

    async def get_submission(self, submission_id: str, abort: AbortSignal = None) -> Submission:
        data = _data(await self.request("GET", f"/submissions/{submission_id}", abort=abort))
        return _parse(Submission, data.get("submission", data))

    async def submissions_for_student(self, student_id: str, abort: AbortSignal = None) -> List[Submission]:
        data = _data(await self.request("GET", f"/submissions/student/{student_id}", abort=abort))
        return _parse_list(Submission, data.get("submissions"))

    async def submissions_for_worksheet(self, worksheet_id: str, abort: AbortSignal = None) -> List[Submission]:
        data = _data(await self.request("GET", f"/submissions/worksheet/{worksheet_id}", abort=abort))
        return _parse_list(Submission, data.get("submissions"))

    async def grade_submission(self, submission_id: str, body: dict, abort: AbortSignal = None) -> Optional[Submission]:
        data = _data(await self.request("PUT", f"/submissions/{submission_id}/grade", json=body, abort=abort))
        raw = data.get("submission")
        return _parse(Submission, raw) if raw else None

    # --- Users ---

    async def list_users(self, params: dict = None, abort: AbortSignal = None) -> List[User]:
        data = _data(await self.request("GET", "/users", params=params, abort=abort))
        return _parse_list(User, data.get("users"))

    # --- Workbooks ---

    async def list_workbooks(self, params: dict = None, abort: AbortSignal = None) -> List[Workbook]:
        data = _data(await self.request("GET", "/workbooks", params=params, abort=abort))
        return _parse_list(Workbook, data.get("workbooks"))

    async def get_workbook(self, workbook_id: str, abort: AbortSignal = None) -> Workbook:
        data = _data(await self.request("GET", f"/workbooks/{workbook_id}", abort=abort))
        return _parse(Workbook, data.get("workbook", data))

    async def create_workbook(self, body: dict, abort: AbortSignal = None) -> Optional[Workbook]:
        data = _data(await self.request("POST", "/workbooks", json=body, abort=abort))
        raw = data.get("workbook")
        return _parse(Workbook, raw) if raw else None

    async def update_workbook(self, workbook_id: str, body: dict, abort: AbortSignal = None) -> Optional[Workbook]:
        data = _data(await self.request("PUT", f"/workbooks/{workbook_id}", json=body, abort=abort))
        raw = data.get("workbook")
        return _parse(Workbook, raw) if raw else None

    async def delete_workbook(self, workbook_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/workbooks/{workbook_id}", abort=abort)

    async def add_workbook_worksheet(self, workbook_id: str, worksheet_id: str, abort: AbortSignal = None) -> None:
        await self.request("POST", f"/workbooks/{workbook_id}/worksheets", json={"worksheetId": worksheet_id}, abort=abort)

    async def remove_workbook_worksheet(self, workbook_id: str, worksheet_id: str, abort: AbortSignal = None) -> None:
        await self.request("DELETE", f"/workbooks/{workbook_id}/worksheets/{worksheet_id}", abort=abort)

    async def reorder_workbook(self, workbook_id: str, worksheet_ids: List[str], abort: AbortSignal = None) -> None:
        await self.request("PUT", f"/workbooks/{workbook_id}/reorder", json={"worksheetIds": list(worksheet_ids)}, abort=abort)
