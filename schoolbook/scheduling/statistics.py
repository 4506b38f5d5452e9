"""Per-student statistics over questionnaire reports and independent work.

For each student: how many reports answered "yes" to question 1 and 2,
dated question 3 notes, dated independent assignments, and a combined
chronological digest.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from schoolbook.scheduling.records import student_label
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.schemas.statistics import StudentStatistics

NO_SECTION = "unassigned"
YES_WORDS = ("yes", "نعم")
DIGEST_SEPARATOR = " | "
_WORD = re.compile(r"\w+")


def is_yes(answer: str | None) -> bool:
    """True when the answer contains "yes" or "نعم" as a whole word."""
    if not answer:
        return False
    words = _WORD.findall(answer.lower())
    return any(word in YES_WORDS for word in words)


def _dated(when: datetime | None, text: str) -> str:
    prefix = when.strftime("%m/%d") if when is not None else "--/--"
    return f"{prefix} - {text}"


class _Accumulator:
    def __init__(self, student_id: int, name: str, section: str) -> None:
        self.stats = StudentStatistics(student_id=student_id, student_name=name, section=section)
        self.entries: list[tuple[datetime, str]] = []

    def touch(self, when: datetime | None) -> None:
        if when is None:
            return
        if self.stats.last_activity is None or when > self.stats.last_activity:
            self.stats.last_activity = when

    def finish(self) -> StudentStatistics:
        self.entries.sort(key=lambda entry: entry[0])
        self.stats.all_responses = DIGEST_SEPARATOR.join(text for _, text in self.entries)
        return self.stats


def build_statistics(
    responses: Iterable[Any],
    assignments: Iterable[Any],
    students: Iterable[Any],
) -> list[StudentStatistics]:
    """Aggregate reports and assignments by student, ordered by student id."""
    by_id = {student.id: student for student in students}
    acc: dict[int, _Accumulator] = {}

    def slot(student_id: int) -> _Accumulator:
        if student_id not in acc:
            student = by_id.get(student_id)
            acc[student_id] = _Accumulator(
                student_id,
                student_label(student, student_id),
                (student.section if student is not None else None) or NO_SECTION,
            )
        return acc[student_id]

    for response in responses:
        appointment = response.appointment
        if appointment is None:
            continue
        entry = slot(appointment.student_id)
        when = appointment.start_time
        if is_yes(response.question1):
            entry.stats.question1_yes_count += 1
        if is_yes(response.question2):
            entry.stats.question2_yes_count += 1
        if response.question3:
            text = _dated(when, response.question3)
            entry.stats.question3_responses.append(text)
            entry.entries.append((when or datetime.min, text))
        entry.touch(when)

    for assignment in assignments:
        entry = slot(assignment.student_id)
        when = assignment.submitted_at
        text = _dated(when, f"task: {assignment.assignment}")
        entry.stats.assignment_responses.append(text)
        entry.entries.append((when or datetime.min, text))
        entry.touch(when)

    return [acc[student_id].finish() for student_id in sorted(acc)]


async def collect_statistics(store: SqlSchedulingStore) -> list[StudentStatistics]:
    responses = await store.list_questionnaire_responses()
    assignments = await store.list_independent_assignments()
    students = await store.list_users_by_role("student")
    return build_statistics(responses, assignments, students)
