"""Test score bookkeeping."""

import math
from datetime import datetime
from typing import List

from homeworkbugger.db.models import OverallStats, SubjectScore, TestScore
from homeworkbugger.engine.tracking import new_id
from homeworkbugger.utils.constants import (
    GRADE_BANDS,
    MAX_NAME_LENGTH,
    SEMESTERS,
    TEST_TYPES,
    YEARS,
)


def _normalize_choice(value: str, options: List[str], label: str) -> str:
    for option in options:
        if option.lower() == value.strip().lower():
            return option
    raise ValueError(f"Invalid {label}: {value}. Choose one of: {', '.join(options)}")


def new_test_score(
    test_type: str, year: str, semester: str, now: datetime | None = None
) -> TestScore:
    """Create an empty test record, e.g. UT1 for SE semester 3."""
    return TestScore(
        id=new_id(now),
        test_type=_normalize_choice(test_type, TEST_TYPES, "test type"),
        year=_normalize_choice(year, YEARS, "year"),
        semester=_normalize_choice(str(semester), SEMESTERS, "semester"),
    )


def find_test_score(test_scores: List[TestScore], test_id: str) -> TestScore | None:
    for test_score in test_scores:
        if test_score.id == test_id:
            return test_score
    return None


def add_subject_score(
    test_score: TestScore,
    name: str,
    marks_obtained: float,
    total_marks: float,
    now: datetime | None = None,
) -> SubjectScore:
    """Record marks for a subject.

    Raises:
        ValueError: if the name is empty or the marks are out of range
    """
    name = name.strip()
    if not name:
        raise ValueError("Subject name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Subject name too long (max {MAX_NAME_LENGTH} characters)")

    if not (math.isfinite(marks_obtained) and math.isfinite(total_marks)):
        raise ValueError("Please enter valid marks")
    if marks_obtained < 0 or total_marks <= 0 or marks_obtained > total_marks:
        raise ValueError("Please enter valid marks")

    subject = SubjectScore(
        id=new_id(now),
        name=name,
        marks_obtained=marks_obtained,
        total_marks=total_marks,
    )
    # Ids are timestamps; keep them unique when added within the same millisecond
    while any(s.id == subject.id for s in test_score.subjects):
        subject.id = str(int(subject.id) + 1)

    test_score.subjects.append(subject)
    return subject


def remove_subject_score(test_score: TestScore, subject_id: str) -> bool:
    """Remove a subject's marks. Returns False if it wasn't there."""
    remaining = [s for s in test_score.subjects if s.id != subject_id]
    removed = len(remaining) != len(test_score.subjects)
    test_score.subjects = remaining
    return removed


def percentage(marks_obtained: float, total_marks: float) -> float:
    """Percentage rounded to one decimal."""
    return round(marks_obtained / total_marks * 100, 1)


def grade_band(value: float) -> str:
    """Map a percentage to excellent/good/average/fair/poor."""
    for threshold, band in GRADE_BANDS:
        if value >= threshold:
            return band
    return GRADE_BANDS[-1][1]


def overall_stats(test_score: TestScore) -> OverallStats | None:
    """Totals across all subjects, or None when no subject is recorded."""
    if not test_score.subjects:
        return None

    total_obtained = sum(s.marks_obtained for s in test_score.subjects)
    total_marks = sum(s.total_marks for s in test_score.subjects)
    overall = percentage(total_obtained, total_marks)

    return OverallStats(
        total_obtained=total_obtained,
        total_marks=total_marks,
        percentage=overall,
        grade=grade_band(overall),
    )
