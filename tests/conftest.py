# tests/conftest.py
import json
import re
import sys
from pathlib import Path

import httpx
import pytest
from jose import jwt

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.api_client import ApiClient
from services.session import MemoryTokenStore, SessionContext

BASE_URL = "http://lms.test/api"


def make_token(user_id: str, role: str) -> str:
    return jwt.encode({"id": user_id, "role": role}, "test-secret", algorithm="HS256")


def ok(data=None, message=None, status=200):
    body = {"success": True, "data": data if data is not None else {}}
    if message:
        body["message"] = message
    return httpx.Response(status, json=body)


def fail(status, message):
    return httpx.Response(status, json={"success": False, "message": message})


class FakeBackend:
    """In-memory stand-in for the LMS REST backend, served through httpx.MockTransport."""

    def __init__(self):
        self.users = {
            "t1": {"id": "t1", "email": "ana@school.test", "firstName": "Ana", "lastName": "Ruiz", "role": "teacher"},
            "t2": {"id": "t2", "email": "ben@school.test", "firstName": "Ben", "lastName": "Cole", "role": "teacher"},
            "s1": {"id": "s1", "email": "s1@school.test", "firstName": "Sam", "lastName": "One", "role": "student"},
            "s2": {"id": "s2", "email": "s2@school.test", "firstName": "Sol", "lastName": "Two", "role": "student"},
            "s3": {"id": "s3", "email": "s3@school.test", "firstName": "Sky", "lastName": "Three", "role": "student"},
        }
        self.passwords = {"ana@school.test": "secret1", "s1@school.test": "secret1"}
        self.groups = {
            "g1": {
                "id": "g1",
                "name": "Spanish A",
                "description": "Morning class",
                "teacherId": "t1",
                "joinCode": "AB12CD",
                "members": [{"id": "m1", "studentId": "s1", "groupId": "g1"}],
            },
            "g2": {"id": "g2", "name": "Art B", "teacherId": "t2", "joinCode": "ZZ99YY", "members": []},
        }
        self.worksheets = {
            "w1": {
                "id": "w1",
                "title": "Colors",
                "subject": "Spanish",
                "description": "Basic colors",
                "teacherId": "t1",
                "isPublished": False,
                "questions": [],
            },
        }
        self.submissions = []
        self.workbooks = {
            "b1": {"id": "b1", "title": "Unit 1", "teacherId": "t1", "worksheetIds": ["w1", "w2", "w3"]},
        }
        self.assignments = {}
        self.requests = []
        self.failures = {}
        self._seq = 0
        self.routes = [
            ("POST", r"/auth/login", self.login),
            ("GET", r"/auth/me", self.me),
            ("GET", r"/worksheets", self.list_worksheets),
            ("POST", r"/worksheets", self.create_worksheet),
            ("POST", r"/worksheets/upload", self.upload_worksheet),
            ("POST", r"/worksheets/google-link", self.google_link),
            ("GET", r"/worksheets/(?P<id>[^/]+)/file", self.worksheet_file),
            ("POST", r"/worksheets/(?P<id>[^/]+)/publish", self.toggle_publish),
            ("GET", r"/worksheets/(?P<id>[^/]+)", self.get_worksheet),
            ("PUT", r"/worksheets/(?P<id>[^/]+)", self.update_worksheet),
            ("DELETE", r"/worksheets/(?P<id>[^/]+)", self.delete_worksheet),
            ("GET", r"/groups", self.list_groups),
            ("POST", r"/groups", self.create_group),
            ("GET", r"/groups/available-students", self.available_students),
            ("POST", r"/groups/join", self.join_group),
            ("POST", r"/groups/(?P<id>[^/]+)/students", self.add_students),
            ("DELETE", r"/groups/(?P<id>[^/]+)/students/(?P<sid>[^/]+)", self.remove_student),
            ("GET", r"/groups/(?P<id>[^/]+)/assignments", self.list_assignments),
            ("POST", r"/groups/(?P<id>[^/]+)/assignments", self.assign),
            ("DELETE", r"/groups/(?P<id>[^/]+)/assignments/(?P<aid>[^/]+)", self.unassign),
            ("DELETE", r"/groups/(?P<id>[^/]+)", self.delete_group),
            ("POST", r"/submissions", self.submit),
            ("GET", r"/submissions/student/(?P<id>[^/]+)", self.student_submissions),
            ("GET", r"/submissions/worksheet/(?P<id>[^/]+)", self.worksheet_submissions),
            ("PUT", r"/submissions/(?P<id>[^/]+)/grade", self.grade),
            ("GET", r"/workbooks", self.list_workbooks),
            ("GET", r"/workbooks/(?P<id>[^/]+)", self.get_workbook),
            ("PUT", r"/workbooks/(?P<id>[^/]+)/reorder", self.reorder_workbook),
            ("DELETE", r"/workbooks/(?P<id>[^/]+)", self.delete_workbook),
        ]

    def next_id(self, prefix):
        self._seq += 1
        return f"{prefix}{self._seq}"

    def fail_on(self, method, path, status):
        """status is an HTTP code, or "network" for a dropped connection."""
        self.failures[(method, path)] = status

    def calls(self, method=None, path=None):
        return [(m, p, b) for m, p, b in self.requests if (method is None or m == method) and (path is None or p == path)]

    def _caller(self, request):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        try:
            return jwt.get_unverified_claims(header[len("Bearer "):]).get("id")
        except Exception:
            return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api"):]
        body = None
        if request.headers.get("content-type", "").startswith("application/json"):
            body = json.loads(request.content)
        self.requests.append((request.method, path, body))

        failure = self.failures.get((request.method, path))
        if failure == "network":
            raise httpx.ConnectError("connection refused", request=request)
        if failure:
            return fail(failure, "Backend says no")

        caller = self._caller(request)
        if path != "/auth/login" and caller not in self.users:
            return fail(401, "Token expired")

        for method, pattern, handler in self.routes:
            match = re.fullmatch(pattern, path)
            if method == request.method and match:
                return handler(request, caller, body, **match.groupdict())
        return fail(404, f"No route {request.method} {path}")

    # --- auth ---

    def login(self, request, caller, body):
        email = body["email"]
        if self.passwords.get(email) != body["password"]:
            return fail(401, "Invalid credentials")
        user = next(u for u in self.users.values() if u["email"] == email)
        return ok({"token": make_token(user["id"], user["role"]), "user": user})

    def me(self, request, caller, body):
        return ok({"user": self.users[caller]})

    # --- worksheets ---

    def list_worksheets(self, request, caller, body):
        return ok({"worksheets": list(self.worksheets.values())})

    def create_worksheet(self, request, caller, body):
        worksheet = dict(body, id=self.next_id("w"), teacherId=caller, isPublished=False)
        self.worksheets[worksheet["id"]] = worksheet
        return ok({"worksheet": worksheet}, status=201)

    def upload_worksheet(self, request, caller, body):
        worksheet = {"id": self.next_id("w"), "title": "uploaded", "teacherId": caller, "type": "pdf"}
        self.worksheets[worksheet["id"]] = worksheet
        return ok({"worksheet": worksheet}, status=201)

    def google_link(self, request, caller, body):
        worksheet = {
            "id": self.next_id("w"),
            "title": body["title"],
            "teacherId": caller,
            "type": "google_doc",
            "googleDocUrl": body["url"],
            "questions": [{"id": "g1", "type": "google_embed", "question": "", "url": body["url"]}],
        }
        self.worksheets[worksheet["id"]] = worksheet
        return ok({"worksheet": worksheet}, status=201)

    def get_worksheet(self, request, caller, body, id):
        if id not in self.worksheets:
            return fail(404, "Worksheet not found")
        return ok({"worksheet": self.worksheets[id]})

    def worksheet_file(self, request, caller, body, id):
        return ok({"fileName": "colors.pdf", "mimeType": "application/pdf", "data": "JVBERi0="})

    def update_worksheet(self, request, caller, body, id):
        self.worksheets[id].update(body)
        return ok({"worksheet": self.worksheets[id]})

    def delete_worksheet(self, request, caller, body, id):
        self.worksheets.pop(id, None)
        return ok(message="Worksheet deleted")

    def toggle_publish(self, request, caller, body, id):
        worksheet = self.worksheets[id]
        worksheet["isPublished"] = not worksheet.get("isPublished", False)
        return ok({"worksheet": worksheet})

    # --- groups ---

    def list_groups(self, request, caller, body):
        return ok({"groups": list(self.groups.values())})

    def create_group(self, request, caller, body):
        group = dict(body, id=self.next_id("g"), teacherId=caller, joinCode="NEW123", members=[])
        self.groups[group["id"]] = group
        return ok({"group": group}, status=201)

    def delete_group(self, request, caller, body, id):
        self.groups.pop(id, None)
        return ok(message="Group deleted")

    def available_students(self, request, caller, body):
        return ok({"students": [u for u in self.users.values() if u["role"] == "student"]})

    def add_students(self, request, caller, body, id):
        group = self.groups[id]
        present = {m["studentId"] for m in group["members"]}
        for sid in body["studentIds"]:
            if sid not in present:
                group["members"].append({"id": self.next_id("m"), "studentId": sid, "groupId": id})
                present.add(sid)
        return ok({"group": group})

    def remove_student(self, request, caller, body, id, sid):
        group = self.groups[id]
        group["members"] = [m for m in group["members"] if m["studentId"] != sid]
        return ok(message="Student removed")

    def join_group(self, request, caller, body):
        for group in self.groups.values():
            if group["joinCode"] == body["joinCode"]:
                if any(m["studentId"] == caller for m in group["members"]):
                    return fail(400, "You are already a member of this group")
                group["members"].append({"id": self.next_id("m"), "studentId": caller, "groupId": group["id"]})
                return ok({"group": group}, message=f"Joined {group['name']}")
        return fail(404, "Invalid join code")

    def list_assignments(self, request, caller, body, id):
        return ok({"assignments": [a for a in self.assignments.values() if a["groupId"] == id]})

    def assign(self, request, caller, body, id):
        assignment = dict(body, id=self.next_id("a"), groupId=id)
        self.assignments[assignment["id"]] = assignment
        return ok({"assignment": assignment}, status=201)

    def unassign(self, request, caller, body, id, aid):
        self.assignments.pop(aid, None)
        return ok()

    # --- submissions ---

    def submit(self, request, caller, body):
        submission = dict(body, id=self.next_id("sub"), studentId=caller)
        self.submissions.append(submission)
        return ok({"submission": submission}, status=201)

    def student_submissions(self, request, caller, body, id):
        return ok({"submissions": [s for s in self.submissions if s["studentId"] == id]})

    def worksheet_submissions(self, request, caller, body, id):
        return ok({"submissions": [s for s in self.submissions if s["worksheetId"] == id]})

    def grade(self, request, caller, body, id):
        submission = next(s for s in self.submissions if s["id"] == id)
        submission.update(body)
        return ok({"submission": submission})

    # --- workbooks ---

    def list_workbooks(self, request, caller, body):
        return ok({"workbooks": list(self.workbooks.values())})

    def get_workbook(self, request, caller, body, id):
        return ok({"workbook": self.workbooks[id]})

    def reorder_workbook(self, request, caller, body, id):
        self.workbooks[id]["worksheetIds"] = body["worksheetIds"]
        return ok()

    def delete_workbook(self, request, caller, body, id):
        self.workbooks.pop(id, None)
        return ok()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def teacher_token():
    return make_token("t1", "teacher")


@pytest.fixture
def student_token():
    return make_token("s1", "student")


@pytest.fixture
def make_api(backend):
    def factory(token=None, store=None):
        session = SessionContext(store if store is not None else MemoryTokenStore(token)).init()
        return ApiClient(session, base_url=BASE_URL, transport=httpx.MockTransport(backend.handle))

    return factory


@pytest.fixture
def teacher_api(make_api, teacher_token):
    return make_api(teacher_token)


@pytest.fixture
def student_api(make_api, student_token):
    return make_api(student_token)


@pytest.fixture
def client(backend):
    from fastapi import Depends
    from fastapi.testclient import TestClient

    from main import app
    from routes.auth import get_api, get_session

    async def fake_api(session: SessionContext = Depends(get_session)):
        api = ApiClient(session, base_url=BASE_URL, transport=httpx.MockTransport(backend.handle))
        try:
            yield api
        finally:
            await api.aclose()

    app.dependency_overrides[get_api] = fake_api
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    return make_token
