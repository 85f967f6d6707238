from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.children import service as children_service
from app.api.v1.children.service import ALREADY_LINKED_MESSAGE, IDENTITY_MISMATCH_MESSAGE
from app.core.enums import ChildStatus
from app.core.models import Child, School

CHILDREN_URL = "/api/v1/children"


async def _import_registry(client: AsyncClient, headers, lines) -> None:
    content = ("prenom,nom,code,date,classe\n" + "\n".join(lines) + "\n").encode()
    response = await client.post(
        "/api/v1/students/import",
        files={"file": ("eleves.csv", content, "text/csv")},
        headers=headers,
    )
    assert response.status_code == 200, response.text


def _payload(school: School, **overrides) -> dict:
    payload = {
        "first_name": "awa",
        "last_name": "TRAORE",
        "student_code": "ab 12",
        "birth_date": "2015-03-01",
        "class_name": "cm2",
        "school_id": str(school.id),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_enroll_child_copies_registry_values(
    client: AsyncClient,
    db_session: AsyncSession,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])

    response = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(parent))
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["first_name"] == "Awa"
    assert data["last_name"] == "Traore"
    assert data["class_name"] == "CM2"
    assert data["student_code"] == "AB-12"
    assert data["birth_date"] == "2015-03-01"
    assert data["status"] == ChildStatus.APPROVED.value
    assert data["parent_id"] == str(parent.id)
    assert data["school_id"] == str(school.id)

    result = await db_session.execute(select(Child).where(Child.parent_id == parent.id))
    child = result.scalars().one()
    assert child.grade == "CM2"
    assert child.birth_date == date(2015, 3, 1)


@pytest.mark.asyncio
async def test_student_can_only_be_claimed_once(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    other_parent,
    auth_headers,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])

    first = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(parent))
    assert first.status_code == 201

    for user in (parent, other_parent):
        response = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(user))
        assert response.status_code == 409
        assert response.json()["detail"] == ALREADY_LINKED_MESSAGE


@pytest.mark.asyncio
async def test_unique_constraint_rejects_concurrent_claim(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    other_parent,
    auth_headers,
    monkeypatch,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])
    assert (await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(parent))).status_code == 201

    # Simulate a second request that passed the pre-check before the first committed
    async def _no_existing_child(db, school_id, student_code):
        return None

    monkeypatch.setattr(children_service, "_get_child_by_student_code", _no_existing_child)
    response = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(other_parent))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_school_can_be_given_by_name(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])

    payload = _payload(school, school_id=None, school_name=school.name, date_of_birth="01/03/2015")
    payload.pop("birth_date")
    response = await client.post(CHILDREN_URL, json=payload, headers=auth_headers(parent))
    assert response.status_code == 201, response.text


@pytest.mark.asyncio
async def test_identity_mismatch_is_not_found(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])

    for overrides in ({"student_code": "AB-13"}, {"birth_date": "2015-03-02"}):
        response = await client.post(CHILDREN_URL, json=_payload(school, **overrides), headers=auth_headers(parent))
        assert response.status_code == 404
        assert response.json()["detail"] == IDENTITY_MISMATCH_MESSAGE


@pytest.mark.asyncio
async def test_code_and_birth_date_match_tolerates_typos(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(client, auth_headers(school_admin), ["Awa,Traore,AB-12,01/03/2015,CM2"])

    response = await client.post(
        CHILDREN_URL,
        json=_payload(school, first_name="Ava", class_name="CM 2"),
        headers=auth_headers(parent),
    )
    assert response.status_code == 201
    assert response.json()["first_name"] == "Awa"


@pytest.mark.asyncio
async def test_class_disambiguates_shared_code_and_birth_date(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(
        client,
        auth_headers(school_admin),
        [
            "Awa,Traore,X1,2015-01-01,CM-1",
            "Awa,Traore,X1,2015-01-01,CM-2",
            "Awa,Traore,X1,2015-01-01,CE1",
        ],
    )

    response = await client.post(
        CHILDREN_URL,
        json=_payload(school, student_code="x1", birth_date="01/01/2015", class_name="CM 2"),
        headers=auth_headers(parent),
    )
    assert response.status_code == 201, response.text
    assert response.json()["class_name"] == "CM-2"


@pytest.mark.asyncio
async def test_ambiguous_match_is_not_found(
    client: AsyncClient,
    school: School,
    school_admin,
    parent,
    auth_headers,
) -> None:
    await _import_registry(
        client,
        auth_headers(school_admin),
        [
            "Awa,Traore,X1,2015-01-01,CM1",
            "Awa,Traore,X1,2015-01-01,CE1",
        ],
    )

    response = await client.post(
        CHILDREN_URL,
        json=_payload(school, student_code="X1", birth_date="2015-01-01", class_name="6EME"),
        headers=auth_headers(parent),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_school_without_registry(
    client: AsyncClient,
    school: School,
    parent,
    auth_headers,
) -> None:
    response = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(parent))
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"school_id": None}, "School is required."),
        ({"school_id": "Unknown School"}, "School not found."),
        ({"student_code": ""}, "First name, last name, student code, birth date and class are required."),
        ({"class_name": None}, "First name, last name, student code, birth date and class are required."),
        ({"birth_date": "31/02/2015"}, "Invalid birth date."),
    ],
)
async def test_enrollment_validation(
    client: AsyncClient,
    school: School,
    parent,
    auth_headers,
    overrides,
    message,
) -> None:
    response = await client.post(CHILDREN_URL, json=_payload(school, **overrides), headers=auth_headers(parent))
    assert response.status_code == 400
    assert response.json()["detail"] == message


@pytest.mark.asyncio
async def test_only_parents_can_enroll(
    client: AsyncClient,
    school: School,
    school_admin,
    auth_headers,
) -> None:
    response = await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(school_admin))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_children_scoping(
    client: AsyncClient,
    school: School,
    school_admin,
    other_school_admin,
    parent,
    other_parent,
    auth_headers,
) -> None:
    await _import_registry(
        client,
        auth_headers(school_admin),
        ["Awa,Traore,AB-12,01/03/2015,CM2", "Moussa,Keita,C7,2014-05-02,CE1"],
    )
    assert (await client.post(CHILDREN_URL, json=_payload(school), headers=auth_headers(parent))).status_code == 201
    moussa = _payload(
        school, first_name="Moussa", last_name="Keita", student_code="C7", birth_date="2014-05-02", class_name="CE1"
    )
    assert (await client.post(CHILDREN_URL, json=moussa, headers=auth_headers(other_parent))).status_code == 201

    response = await client.get(CHILDREN_URL, headers=auth_headers(parent))
    assert response.status_code == 200
    assert [c["first_name"] for c in response.json()] == ["Awa"]

    response = await client.get(CHILDREN_URL, headers=auth_headers(school_admin))
    assert [c["last_name"] for c in response.json()] == ["Keita", "Traore"]

    response = await client.get(
        CHILDREN_URL, params={"parent_id": str(other_parent.id)}, headers=auth_headers(school_admin)
    )
    assert [c["first_name"] for c in response.json()] == ["Moussa"]

    response = await client.get(CHILDREN_URL, headers=auth_headers(other_school_admin))
    assert response.json() == []
