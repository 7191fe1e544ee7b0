from __future__ import annotations

import asyncio

import pytest

from tests.conftest import principal_of, seed_assignment, seed_course, seed_user
from tutoring.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from tutoring.models.course import Assignment
from tutoring.models.page import Pagination
from tutoring.models.submission import SubmissionSearch
from tutoring.models.user import User
from tutoring.repos.unit_of_work import InMemoryStore
from tutoring.services.registry import Services


@pytest.fixture
def setup(store: InMemoryStore, services: Services) -> tuple[User, User, Assignment]:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, lessons = seed_course(store, tutor, lessons=1)
    assignment = seed_assignment(store, lessons[0], max_score=100)
    asyncio.run(services.enrollments.enroll(principal_of(student), student.id, course.id))
    return tutor, student, assignment


def test_scenario_c_submit_conflict_and_grade_bounds(services: Services, setup) -> None:
    tutor, student, assignment = setup

    submission = asyncio.run(
        services.grading.submit(principal_of(student), assignment.id, "my answer")
    )
    assert submission.grade is None

    with pytest.raises(ConflictError):
        asyncio.run(services.grading.submit(principal_of(student), assignment.id, "again"))

    with pytest.raises(ValidationError):
        asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 150))

    graded = asyncio.run(
        services.grading.grade(principal_of(tutor), submission.id, 85, "Good work")
    )
    assert graded.grade == 85
    assert graded.feedback == "Good work"
    assert graded.updated_at > submission.updated_at


@pytest.mark.parametrize(
    "grade,ok",
    [(-1, False), (0, True), (100, True), (101, False)],
)
def test_grade_bounds(services: Services, setup, grade: int, ok: bool) -> None:
    tutor, student, assignment = setup
    submission = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "x"))
    if ok:
        graded = asyncio.run(services.grading.grade(principal_of(tutor), submission.id, grade))
        assert graded.grade == grade
    else:
        with pytest.raises(ValidationError):
            asyncio.run(services.grading.grade(principal_of(tutor), submission.id, grade))


@pytest.mark.parametrize("bad", [True, 85.0, "85"])
def test_grade_must_be_integer(services: Services, setup, bad) -> None:
    tutor, student, assignment = setup
    submission = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "x"))
    with pytest.raises(ValidationError):
        asyncio.run(services.grading.grade(principal_of(tutor), submission.id, bad))


def test_regrade_overwrites(services: Services, setup) -> None:
    tutor, student, assignment = setup
    submission = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "x"))
    asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 40, "try again"))
    regraded = asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 90))
    assert regraded.grade == 90
    assert regraded.feedback is None


def test_submit_requires_enrollment(store: InMemoryStore, services: Services, setup) -> None:
    _, _, assignment = setup
    outsider = seed_user(store)
    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.submit(principal_of(outsider), assignment.id, "x"))


def test_submit_unknown_assignment_is_not_found(services: Services, setup) -> None:
    _, student, _ = setup
    ghost = Assignment.new(lesson_id=student.id)
    with pytest.raises(NotFoundError):
        asyncio.run(services.grading.submit(principal_of(student), ghost.id, "x"))


def test_non_owner_tutor_cannot_grade_but_admin_can(
    store: InMemoryStore, services: Services, setup
) -> None:
    _, student, assignment = setup
    stranger = seed_user(store, "tutor")
    admin = seed_user(store, "admin")
    submission = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "x"))

    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.grade(principal_of(stranger), submission.id, 50))
    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.grade(principal_of(student), submission.id, 50))
    graded = asyncio.run(services.grading.grade(principal_of(admin), submission.id, 50))
    assert graded.grade == 50


def test_grade_respects_custom_max_score(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, lessons = seed_course(store, tutor, lessons=1)
    quiz = seed_assignment(store, lessons[0], max_score=10)
    asyncio.run(services.enrollments.enroll(principal_of(student), student.id, course.id))
    submission = asyncio.run(services.grading.submit(principal_of(student), quiz.id, "x"))

    with pytest.raises(ValidationError, match="between 0 and 10"):
        asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 11))
    assert asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 10)).grade == 10


def test_pending_count_scoped_to_tutor(store: InMemoryStore, services: Services, setup) -> None:
    tutor, student, assignment = setup
    other_tutor = seed_user(store, "tutor")
    admin = seed_user(store, "admin")
    other_course, other_lessons = seed_course(store, other_tutor, lessons=1)
    other_assignment = seed_assignment(store, other_lessons[0])
    asyncio.run(
        services.enrollments.enroll(principal_of(student), student.id, other_course.id)
    )

    graded = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "a"))
    asyncio.run(services.grading.submit(principal_of(student), other_assignment.id, "b"))
    assert asyncio.run(services.grading.pending_count(principal_of(tutor))) == 1
    assert asyncio.run(services.grading.pending_count(principal_of(admin))) == 2

    asyncio.run(services.grading.grade(principal_of(tutor), graded.id, 70))
    assert asyncio.run(services.grading.pending_count(principal_of(tutor))) == 0
    assert asyncio.run(services.grading.pending_count(principal_of(other_tutor))) == 1

    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.pending_count(principal_of(student)))


def test_delete_submission_reopens_assignment(services: Services, setup) -> None:
    tutor, student, assignment = setup
    first = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "v1"))

    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.delete_submission(principal_of(student), first.id))

    asyncio.run(services.grading.delete_submission(principal_of(tutor), first.id))
    second = asyncio.run(services.grading.submit(principal_of(student), assignment.id, "v2"))
    listed = asyncio.run(services.grading.list_for_assignment(principal_of(tutor), assignment.id))
    assert [s.id for s in listed] == [second.id]
    assert listed[0].payload == "v2"


def test_submission_inbox_spans_owned_courses(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    other = seed_user(store, "tutor")
    admin = seed_user(store, "admin")
    alice = seed_user(store, full_name="Alice Smith")
    bob = seed_user(store, full_name="Bob Jones")
    geometry, g_lessons = seed_course(store, tutor, title="Geometry", lessons=1)
    foreign, f_lessons = seed_course(store, other, title="Chemistry", lessons=1)
    proofs = seed_assignment(store, g_lessons[0], title="Proofs")
    angles = seed_assignment(store, g_lessons[0], title="Angles")
    titration = seed_assignment(store, f_lessons[0], title="Titration")

    for student in (alice, bob):
        asyncio.run(services.enrollments.enroll(principal_of(student), student.id, geometry.id))
    asyncio.run(services.enrollments.enroll(principal_of(alice), alice.id, foreign.id))
    first = asyncio.run(services.grading.submit(principal_of(alice), proofs.id, "a"))
    asyncio.run(services.grading.submit(principal_of(bob), angles.id, "b"))
    asyncio.run(services.grading.submit(principal_of(alice), titration.id, "c"))
    asyncio.run(services.grading.grade(principal_of(tutor), first.id, 90, None))

    tp = principal_of(tutor)
    inbox = asyncio.run(services.grading.list_for_tutor(tp, Pagination()))
    assert inbox.total == 2
    # newest first
    assert [v.assignment_title for v in inbox.items] == ["Angles", "Proofs"]
    assert inbox.items[0].student_name == "Bob Jones"
    assert inbox.items[0].course_title == "Geometry"

    pending = asyncio.run(
        services.grading.list_for_tutor(tp, Pagination(), SubmissionSearch(pending_only=True))
    )
    assert [v.assignment_title for v in pending.items] == ["Angles"]

    by_text = asyncio.run(
        services.grading.list_for_tutor(tp, Pagination(), SubmissionSearch(text="alice"))
    )
    assert [v.assignment_title for v in by_text.items] == ["Proofs"]

    by_assignment = asyncio.run(
        services.grading.list_for_tutor(
            tp, Pagination(), SubmissionSearch(assignment_id=titration.id)
        )
    )
    assert by_assignment.total == 0

    everything = asyncio.run(services.grading.list_for_tutor(principal_of(admin), Pagination()))
    assert everything.total == 3


def test_submission_inbox_denied_for_students(store: InMemoryStore, services: Services) -> None:
    student = seed_user(store)
    with pytest.raises(ForbiddenError):
        asyncio.run(services.grading.list_for_tutor(principal_of(student), Pagination()))
