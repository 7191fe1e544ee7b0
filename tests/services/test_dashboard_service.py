from __future__ import annotations

import asyncio

import pytest

from tests.conftest import principal_of, seed_assignment, seed_course, seed_user
from tutoring.core.errors import ForbiddenError
from tutoring.repos.unit_of_work import InMemoryStore
from tutoring.services.dashboard_service import StudentSummary
from tutoring.services.registry import Services, build_services


def test_tutor_summary_counts_own_courses(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    other = seed_user(store, "tutor")
    admin = seed_user(store, "admin")
    s1 = seed_user(store)
    s2 = seed_user(store)
    c1, l1 = seed_course(store, tutor, lessons=3)
    c2, _ = seed_course(store, tutor, lessons=2)
    c3, _ = seed_course(store, other, lessons=5)
    assignment = seed_assignment(store, l1[0])

    for student in (s1, s2):
        asyncio.run(services.enrollments.enroll(principal_of(student), student.id, c1.id))
    asyncio.run(services.enrollments.enroll(principal_of(s1), s1.id, c2.id))
    asyncio.run(services.enrollments.enroll(principal_of(s1), s1.id, c3.id))
    asyncio.run(services.grading.submit(principal_of(s1), assignment.id, "x"))

    mine = asyncio.run(services.dashboard.tutor_summary(principal_of(tutor)))
    assert (mine.courses, mine.lessons, mine.enrollments, mine.students) == (2, 5, 3, 2)
    assert mine.pending_submissions == 1

    everything = asyncio.run(services.dashboard.tutor_summary(principal_of(admin)))
    assert (everything.courses, everything.lessons, everything.enrollments) == (3, 10, 4)
    assert everything.students == 2


def test_tutor_summary_denied_for_students(store: InMemoryStore, services: Services) -> None:
    student = seed_user(store)
    with pytest.raises(ForbiddenError):
        asyncio.run(services.dashboard.tutor_summary(principal_of(student)))


def test_enrollment_stats_per_course(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    other = seed_user(store, "tutor")
    admin = seed_user(store, "admin")
    s1 = seed_user(store)
    s2 = seed_user(store)
    geometry, _ = seed_course(store, tutor, title="Geometry")
    algebra, _ = seed_course(store, tutor, title="Algebra")
    seed_course(store, tutor, title="Calculus")
    chemistry, _ = seed_course(store, other, title="Chemistry")

    for student in (s1, s2):
        asyncio.run(services.enrollments.enroll(principal_of(student), student.id, geometry.id))
    asyncio.run(services.enrollments.enroll(principal_of(s1), s1.id, algebra.id))
    asyncio.run(services.enrollments.enroll(principal_of(s1), s1.id, chemistry.id))

    stats = asyncio.run(services.dashboard.enrollment_stats(principal_of(tutor)))
    assert (stats.total_enrollments, stats.unique_students) == (3, 2)
    assert [(c.course_title, c.enrollment_count) for c in stats.by_course] == [
        ("Algebra", 1),
        ("Calculus", 0),
        ("Geometry", 2),
    ]

    everything = asyncio.run(services.dashboard.enrollment_stats(principal_of(admin)))
    assert everything.total_enrollments == 4
    assert len(everything.by_course) == 4


def test_student_summary_counts_own_work(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    classmate = seed_user(store)
    done, done_lessons = seed_course(store, tutor, title="Done", lessons=2)
    partial, partial_lessons = seed_course(store, tutor, title="Partial", lessons=2)
    empty, _ = seed_course(store, tutor, title="Empty")
    graded = seed_assignment(store, done_lessons[0])
    waiting = seed_assignment(store, partial_lessons[0])
    seed_assignment(store, partial_lessons[1])

    p = principal_of(student)
    enrollments = {
        course.id: asyncio.run(services.enrollments.enroll(p, student.id, course.id))
        for course in (done, partial, empty)
    }
    asyncio.run(services.enrollments.enroll(principal_of(classmate), classmate.id, partial.id))
    for lesson in done_lessons:
        asyncio.run(services.completions.mark_complete(p, enrollments[done.id].id, lesson.id))
    asyncio.run(
        services.completions.mark_complete(p, enrollments[partial.id].id, partial_lessons[0].id)
    )
    submission = asyncio.run(services.grading.submit(p, graded.id, "x"))
    asyncio.run(services.grading.grade(principal_of(tutor), submission.id, 80))
    asyncio.run(services.grading.submit(p, waiting.id, "y"))
    asyncio.run(services.grading.submit(principal_of(classmate), waiting.id, "z"))

    summary = asyncio.run(services.dashboard.student_summary(p))
    assert summary == StudentSummary(
        enrollments=3, completed_courses=1, pending_submissions=1, total_assignments=3
    )


def test_student_summary_denied_for_tutors(store: InMemoryStore, services: Services) -> None:
    tutor = seed_user(store, "tutor")
    with pytest.raises(ForbiddenError):
        asyncio.run(services.dashboard.student_summary(principal_of(tutor)))


def test_dashboards_read_from_one_snapshot(store: InMemoryStore) -> None:
    requested: list[bool] = []

    def factory(*, read_snapshot: bool = False):
        requested.append(read_snapshot)
        return store.unit_of_work(read_snapshot=read_snapshot)

    services = build_services(factory)
    tutor = principal_of(seed_user(store, "tutor"))
    student = principal_of(seed_user(store))

    asyncio.run(services.dashboard.tutor_summary(tutor))
    asyncio.run(services.dashboard.enrollment_stats(tutor))
    asyncio.run(services.dashboard.student_summary(student))
    assert requested == [True, True, True]
