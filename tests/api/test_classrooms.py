import pytest

from app.schemas.enums import UserRoleEnum
from tests.factories import auth_headers, create_user


@pytest.mark.asyncio
async def test_list_classrooms_with_counts(client, school_world):
    admin = await client.get("/api/classrooms", headers=auth_headers(school_world.admin))
    teacher = await client.get("/api/classrooms", headers=auth_headers(school_world.teacher))

    by_name = {item["name"]: item for item in admin.json()}
    assert set(by_name) == {"Grade 4A", "Grade 4B"}
    assert by_name["Grade 4A"]["student_count"] == 1
    assert by_name["Grade 4A"]["device_count"] == 1
    assert [t["email"] for t in by_name["Grade 4A"]["teachers"]] == ["teacher@greenfield.test"]
    assert by_name["Grade 4B"]["teachers"] == []
    assert [item["name"] for item in teacher.json()] == ["Grade 4A"]


@pytest.mark.asyncio
async def test_classroom_crud(client, school_world):
    headers = auth_headers(school_world.admin)

    created = await client.post(
        "/api/classrooms", json={"name": "Grade 5A", "grade": "5", "capacity": 30}, headers=headers
    )
    classroom_id = created.json()["id"]
    patched = await client.patch(f"/api/classrooms/{classroom_id}", json={"section": "East"}, headers=headers)
    detail = await client.get(f"/api/classrooms/{classroom_id}", headers=headers)
    deleted = await client.delete(f"/api/classrooms/{classroom_id}", headers=headers)
    missing = await client.get(f"/api/classrooms/{classroom_id}", headers=headers)

    assert created.status_code == 201
    assert created.json()["school_id"] == school_world.school.id
    assert created.json()["students"] == []
    assert patched.json()["section"] == "East"
    assert detail.json()["capacity"] == 30
    assert deleted.json() == {"message": "Classroom deleted successfully"}
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_classroom_detail_access(client, school_world):
    own = await client.get(f"/api/classrooms/{school_world.classroom_a.id}", headers=auth_headers(school_world.teacher))
    other_class = await client.get(
        f"/api/classrooms/{school_world.classroom_b.id}", headers=auth_headers(school_world.teacher)
    )
    other_school = await client.get(
        f"/api/classrooms/{school_world.other_classroom.id}", headers=auth_headers(school_world.admin)
    )

    assert own.status_code == 200
    assert [s["student_id"] for s in own.json()["students"]] == ["STU-001"]
    assert [d["device_id"] for d in own.json()["devices"]] == ["FP-A-01"]
    assert other_class.status_code == 403
    assert other_school.status_code == 403


@pytest.mark.asyncio
async def test_teacher_cannot_create_classroom(client, school_world):
    response = await client.post("/api/classrooms", json={"name": "Grade 6"}, headers=auth_headers(school_world.teacher))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assign_and_unassign_teacher(client, school_world, db_session):
    headers = auth_headers(school_world.admin)
    foreign_teacher = await create_user(
        db_session, "teacher@riverside.test", UserRoleEnum.TEACHER, school_world.other_school
    )
    url = f"/api/classrooms/{school_world.classroom_b.id}/teachers"

    assigned = await client.post(url, json={"teacher_id": school_world.teacher.id}, headers=headers)
    again = await client.post(url, json={"teacher_id": school_world.teacher.id}, headers=headers)
    not_teacher = await client.post(url, json={"teacher_id": school_world.staff.id}, headers=headers)
    foreign = await client.post(url, json={"teacher_id": foreign_teacher.id}, headers=headers)
    visible = await client.get("/api/classrooms", headers=auth_headers(school_world.teacher))
    removed = await client.delete(f"{url}/{school_world.teacher.id}", headers=headers)
    removed_again = await client.delete(f"{url}/{school_world.teacher.id}", headers=headers)

    assert assigned.status_code == 200
    assert [t["id"] for t in assigned.json()["teachers"]] == [school_world.teacher.id]
    assert len(again.json()["teachers"]) == 1
    assert not_teacher.json()["message"] == "Teacher not found"
    assert foreign.json()["message"] == "Teacher belongs to another school"
    assert sorted(item["name"] for item in visible.json()) == ["Grade 4A", "Grade 4B"]
    assert removed.json() == {"message": "Teacher unassigned successfully"}
    assert removed_again.status_code == 404


@pytest.mark.asyncio
async def test_list_teachers(client, school_world):
    response = await client.get("/api/classrooms/teachers", headers=auth_headers(school_world.admin))
    denied = await client.get("/api/classrooms/teachers", headers=auth_headers(school_world.teacher))

    assert [t["email"] for t in response.json()] == ["teacher@greenfield.test"]
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_update_classroom_rejects_null_name(client, school_world):
    response = await client.patch(
        f"/api/classrooms/{school_world.classroom_a.id}", json={"name": None}, headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 400
    assert response.json()["details"]["fields"][0]["field"] == "body.name"
