import pytest
from bson import ObjectId
from httpx import AsyncClient

from space_together.api.v1.grading_schemes.service import (
    calculate_grade,
    check_scheme,
    default_scheme,
    determine_grade,
    is_passing_grade,
)
from space_together.core.enums import GradingType
from space_together.core.exceptions import ValidationError
from space_together.core.models import SubjectGradingScheme


def _scheme(**fields) -> SubjectGradingScheme:
    base = {
        "main_subject_id": ObjectId(),
        "scheme_type": GradingType.LETTER_GRADE,
        "grade_boundaries": {"A": 80.0, "B": 60.0, "F": 0.0},
        "assessment_weights": {"exams": 60.0, "assignments": 40.0},
        "minimum_passing_grade": "B",
    }
    base.update(fields)
    return SubjectGradingScheme(**base)


def test_defaults_are_valid() -> None:
    for scheme_type in (GradingType.LETTER_GRADE, GradingType.PERCENTAGE):
        check_scheme(default_scheme(ObjectId(), scheme_type))
    with pytest.raises(ValidationError):
        default_scheme(ObjectId(), GradingType.POINTS)


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"assessment_weights": {"exams": 60.0, "assignments": 30.0}}, "sum to 100"),
        ({"assessment_weights": {}}, "cannot be empty"),
        ({"grade_boundaries": {"A": 120.0, "B": 0.0}, "minimum_passing_grade": "B"}, "between 0 and 100"),
        ({"minimum_passing_grade": "C"}, "must exist in grade boundaries"),
        (
            {"scheme_type": GradingType.PASS_FAIL, "grade_boundaries": {"Pass": 50.0}, "minimum_passing_grade": "Pass"},
            "exactly 'Pass' and 'Fail'",
        ),
    ],
)
def test_scheme_rules(fields: dict, message: str) -> None:
    with pytest.raises(ValidationError) as exc:
        check_scheme(_scheme(**fields))
    assert message in exc.value.message


def test_points_allow_large_boundaries() -> None:
    points = _scheme(
        scheme_type=GradingType.POINTS, grade_boundaries={"Gold": 500.0, "None": 0.0}, minimum_passing_grade="Gold"
    )
    check_scheme(points)


def test_weighted_grade() -> None:
    scheme = _scheme()
    result = calculate_grade(scheme, {"exams": 90.0, "assignments": 70.0})
    assert result.score == 82.0
    assert result.grade == "A"
    assert calculate_grade(scheme, {"exams": 50.0}).grade == "F"
    with pytest.raises(ValidationError):
        calculate_grade(scheme, {"homework": 10.0})


def test_score_below_every_boundary_gets_lowest_grade() -> None:
    assert determine_grade(5.0, {"A": 80.0, "B": 40.0, "C": 10.0}) == "C"


def test_passing_grades() -> None:
    scheme = _scheme()
    assert is_passing_grade(scheme, "A")
    assert is_passing_grade(scheme, "B")
    assert not is_passing_grade(scheme, "F")
    pass_fail = _scheme(
        scheme_type=GradingType.PASS_FAIL, grade_boundaries={"Pass": 50.0, "Fail": 0.0}, minimum_passing_grade="Pass"
    )
    assert is_passing_grade(pass_fail, "PASS")
    assert not is_passing_grade(pass_fail, "Fail")


@pytest.mark.asyncio
async def test_grading_scheme_routes(client: AsyncClient, admin, make_account) -> None:
    _, headers = admin
    subject = await client.post("/main-subjects", json={"name": "Mathematics"}, headers=headers)
    assert subject.status_code == 201, subject.text
    subject_id = subject.json()["id"]

    created = await client.post(f"/subject-grading-schemes/subject/{subject_id}/default", headers=headers)
    assert created.status_code == 201, created.text
    scheme = created.json()
    assert scheme["scheme_type"] == "LetterGrade"
    assert scheme["minimum_passing_grade"] == "D"

    again = await client.post(f"/subject-grading-schemes/subject/{subject_id}/default", headers=headers)
    assert again.json()["id"] == scheme["id"]

    payload = {
        "main_subject_id": subject_id,
        "scheme_type": "Percentage",
        "grade_boundaries": {"Pass": 50, "Fail": 0},
        "assessment_weights": {"exams": 100},
        "minimum_passing_grade": "Pass",
    }
    duplicate = await client.post("/subject-grading-schemes", json=payload, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "Grading scheme already exists for this subject and role"

    class_role = await client.post(
        "/subject-grading-schemes", json={**payload, "role": "ClassSubject"}, headers=headers
    )
    assert class_role.status_code == 201, class_role.text

    by_role = await client.get(f"/subject-grading-schemes/subject/{subject_id}/role/ClassSubject", headers=headers)
    assert by_role.json()["id"] == class_role.json()["id"]
    by_type = await client.get("/subject-grading-schemes/type/Percentage", headers=headers)
    assert [s["id"] for s in by_type.json()] == [class_role.json()["id"]]

    scores = {"exams": 100, "assignments": 90, "participation": 80, "projects": 70}
    graded = await client.post(f"/subject-grading-schemes/{scheme['id']}/calculate-grade", json=scores, headers=headers)
    assert graded.json() == {"grade": "A", "score": 90.0}
    passing = await client.post(
        f"/subject-grading-schemes/{scheme['id']}/check-passing", json={"grade": "C"}, headers=headers
    )
    assert passing.json() == {"grade": "C", "passing": True}

    bad_update = await client.put(
        f"/subject-grading-schemes/{scheme['id']}", json={"minimum_passing_grade": "E"}, headers=headers
    )
    assert bad_update.status_code == 400

    _, student = await make_account("s@x.io")
    denied = await client.delete(f"/subject-grading-schemes/{scheme['id']}", headers=student)
    assert denied.status_code == 403
    deleted = await client.delete(f"/subject-grading-schemes/{scheme['id']}", headers=headers)
    assert deleted.status_code == 200
    count = await client.get("/subject-grading-schemes/stats/count", headers=headers)
    assert count.json()["count"] == 1


@pytest.mark.asyncio
async def test_scheme_needs_existing_subject(client: AsyncClient, admin) -> None:
    _, headers = admin
    response = await client.post(f"/subject-grading-schemes/subject/{ObjectId()}/default", headers=headers)
    assert response.status_code == 404
