# tests/test_group_roster.py
import pytest

from models.worksheet import Worksheet
from services.errors import InvalidCode, NetworkFailure, NotFound, PermissionDenied, ServerRejection, ValidationError
from services.group_roster import GroupRosterManager, create_group, filter_worksheets, join_by_code


async def loaded(api, group_id="g1"):
    roster = GroupRosterManager(api, api.session, group_id)
    await roster.load_group()
    return roster


@pytest.mark.asyncio
async def test_load_group_scans_list(teacher_api):
    roster = await loaded(teacher_api)
    assert roster.group.name == "Spanish A"
    assert roster.group.member_ids == {"s1"}
    assert roster.is_owner


@pytest.mark.asyncio
async def test_load_group_not_found(teacher_api):
    roster = GroupRosterManager(teacher_api, teacher_api.session, "nope")
    with pytest.raises(NotFound):
        await roster.load_group()
    assert roster.group is None


@pytest.mark.asyncio
async def test_available_students_is_set_difference(teacher_api, backend):
    roster = await loaded(teacher_api)
    students = await roster.list_available_students()
    assert {s.id for s in students} == {"s2", "s3"}

    backend.groups["g1"]["members"] = []
    roster = await loaded(teacher_api)
    assert {s.id for s in await roster.list_available_students()} == {"s1", "s2", "s3"}

    backend.groups["g1"]["members"] = [{"studentId": sid} for sid in ("s1", "s2", "s3")]
    roster = await loaded(teacher_api)
    assert await roster.list_available_students() == []


@pytest.mark.asyncio
async def test_add_students_reloads_union_without_duplicates(teacher_api, backend):
    roster = await loaded(teacher_api)
    group = await roster.add_students({"s1", "s2"})

    assert group.member_ids == {"s1", "s2"}
    assert len(group.members) == 2
    assert backend.calls("POST", "/groups/g1/students")[0][2] == {"studentIds": ["s1", "s2"]}
    assert len(backend.calls("GET", "/groups")) == 2


@pytest.mark.asyncio
async def test_add_students_requires_selection(teacher_api):
    roster = await loaded(teacher_api)
    with pytest.raises(ValidationError):
        await roster.add_students([])


@pytest.mark.asyncio
async def test_remove_student(teacher_api, backend):
    backend.groups["g1"]["members"].append({"id": "m2", "studentId": "s2", "groupId": "g1"})
    roster = await loaded(teacher_api)

    group = await roster.remove_student("s1", confirmed=True)
    assert group.member_ids == {"s2"}


@pytest.mark.asyncio
async def test_remove_student_needs_confirmation(teacher_api, backend):
    roster = await loaded(teacher_api)
    await roster.remove_student("s1")
    assert backend.calls("DELETE") == []
    assert roster.group.member_ids == {"s1"}


@pytest.mark.asyncio
async def test_remove_non_member_makes_no_call(teacher_api, backend):
    roster = await loaded(teacher_api)
    group = await roster.remove_student("s3", confirmed=True)
    assert backend.calls("DELETE") == []
    assert group.member_ids == {"s1"}


@pytest.mark.asyncio
async def test_only_owner_may_mutate(make_api, token_for, backend):
    other = make_api(token_for("t2", "teacher"))
    roster = await loaded(other)
    assert not roster.is_owner

    with pytest.raises(PermissionDenied):
        await roster.add_students(["s2"])
    with pytest.raises(PermissionDenied):
        await roster.remove_student("s1", confirmed=True)
    with pytest.raises(PermissionDenied):
        await roster.delete_group(confirmed=True)
    assert backend.calls("POST") == []
    assert backend.calls("DELETE") == []


@pytest.mark.asyncio
async def test_failed_add_keeps_previous_roster(teacher_api, backend):
    roster = await loaded(teacher_api)
    previous = roster.group
    backend.fail_on("POST", "/groups/g1/students", 500)

    with pytest.raises(ServerRejection) as exc:
        await roster.add_students(["s2"])
    assert exc.value.message == "Backend says no"
    assert roster.group is previous

    backend.fail_on("POST", "/groups/g1/students", "network")
    with pytest.raises(NetworkFailure):
        await roster.add_students(["s2"])
    assert roster.group.member_ids == {"s1"}


@pytest.mark.asyncio
async def test_delete_group(teacher_api, backend):
    roster = await loaded(teacher_api)
    assert await roster.delete_group() is False
    assert "g1" in backend.groups

    assert await roster.delete_group(confirmed=True) is True
    assert "g1" not in backend.groups
    assert roster.group is None


@pytest.mark.asyncio
async def test_copy_join_code_never_changes_it(teacher_api):
    roster = await loaded(teacher_api)
    clipboard = []
    assert roster.copy_join_code(clipboard.append) == "AB12CD"
    assert clipboard == ["AB12CD"]
    assert roster.join_code == "AB12CD"


@pytest.mark.asyncio
async def test_join_by_code_normalizes(make_api, token_for, backend):
    api = make_api(token_for("s2", "student"))
    result = await join_by_code(api, "  ab12cd ")

    assert backend.calls("POST", "/groups/join")[0][2] == {"joinCode": "AB12CD"}
    assert result["message"] == "Joined Spanish A"
    assert "s2" in {m["studentId"] for m in backend.groups["g1"]["members"]}


@pytest.mark.asyncio
async def test_join_by_code_rejections(student_api, backend):
    with pytest.raises(InvalidCode) as exc:
        await join_by_code(student_api, "ab")
    assert exc.value.message == "Please enter a valid code"
    assert backend.calls("POST", "/groups/join") == []

    with pytest.raises(InvalidCode) as exc:
        await join_by_code(student_api, "ab12cd")
    assert exc.value.message == "You are already a member of this group"

    with pytest.raises(InvalidCode) as exc:
        await join_by_code(student_api, "nope99")
    assert exc.value.message == "Invalid join code"


@pytest.mark.asyncio
async def test_assignments(teacher_api, backend):
    roster = await loaded(teacher_api)
    assignment = await roster.assign_worksheet("w1", "2026-02-20", "  Complete all questions ")
    assert assignment.worksheetId == "w1"
    assert backend.calls("POST", "/groups/g1/assignments")[0][2] == {
        "worksheetId": "w1",
        "dueDate": "2026-02-20",
        "instructions": "Complete all questions",
    }
    assert [a.id for a in await roster.list_assignments()] == [assignment.id]
    assert await roster.remove_assignment(assignment.id, confirmed=True)
    assert await roster.list_assignments() == []


@pytest.mark.asyncio
async def test_create_group_requires_name(teacher_api, backend):
    with pytest.raises(ValidationError):
        await create_group(teacher_api, "   ")

    group = await create_group(teacher_api, " Drawing ", " Fridays ")
    assert group.name == "Drawing"
    assert backend.calls("POST", "/groups")[0][2] == {"name": "Drawing", "description": "Fridays"}


def test_filter_worksheets():
    worksheets = [
        Worksheet(id="1", title="Colors", subject="Spanish"),
        Worksheet(id="2", title="Shapes", subject="Art", description="Basic colours and forms"),
        Worksheet(id="3", title="Numbers", subject=None),
    ]
    assert [w.id for w in filter_worksheets(worksheets, "SPAN")] == ["1"]
    assert [w.id for w in filter_worksheets(worksheets, "colo")] == ["1", "2"]
    assert len(filter_worksheets(worksheets, "")) == 3
