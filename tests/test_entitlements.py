"""
Tests for the entitlement filter.

Tests cover:
- Free users see the first ``free_questions_count`` free-tagged questions
- Premium users see everything
- Derived course totals
- Single-question access checks
"""

import pytest

from courseapi.api.services.entitlements import (
    can_access_question,
    ensure_question_access,
    filter_course,
    filter_section,
    visible_questions,
)
from courseapi.core.exceptions import PremiumRequiredError
from courseapi.db.models.course import Course, Section, compute_totals
from tests.conftest import TestHelpers


def make_section(free_flags, cap=1, section_id="databases", order=0):
    questions = [
        TestHelpers.question(f"{section_id}-q{index}", is_free=is_free)
        for index, is_free in enumerate(free_flags, start=1)
    ]
    return Section(
        id=section_id,
        title=section_id.title(),
        order=order,
        questions=questions,
        free_questions_count=cap,
    )


class TestFilterSection:
    """Per-section visibility."""

    def test_free_user_sees_earliest_free_question_up_to_cap(self):
        """5 questions, 2 free, cap 1: only the earlier free one is visible."""
        section = make_section([False, True, False, True, False], cap=1)

        visible = filter_section(section, is_premium=False)

        assert [q.id for q in visible.questions] == ["databases-q2"]
        assert visible.available_questions == 1
        assert visible.total_questions == 5

    def test_free_user_cap_larger_than_free_count_shows_all_free(self):
        section = make_section([True, False, True], cap=10)

        visible = filter_section(section, is_premium=False)

        assert [q.id for q in visible.questions] == ["databases-q1", "databases-q3"]
        assert visible.available_questions == 2

    def test_free_user_with_no_free_questions_gets_empty_list(self):
        section = make_section([False, False], cap=3)

        visible = filter_section(section, is_premium=False)

        assert visible.questions == []
        assert visible.available_questions == 0
        assert visible.total_questions == 2

    def test_zero_cap_hides_everything_from_free_user(self):
        section = make_section([True, True], cap=0)

        assert visible_questions(section, is_premium=False) == []

    @pytest.mark.parametrize("cap", [0, 1, 2, 3, 5])
    def test_free_visible_count_is_min_of_cap_and_free_count(self, cap):
        flags = [True, False, True, True, False]
        section = make_section(flags, cap=cap)

        visible = filter_section(section, is_premium=False)

        assert visible.available_questions == min(cap, sum(flags))
        assert all(q.is_free for q in visible.questions)

    def test_premium_user_sees_all_questions_in_order(self):
        section = make_section([False, True, False], cap=1)

        visible = filter_section(section, is_premium=True)

        assert [q.id for q in visible.questions] == ["databases-q1", "databases-q2", "databases-q3"]
        assert visible.available_questions == visible.total_questions == 3

    def test_filter_does_not_mutate_section(self):
        section = make_section([False, True, False], cap=1)

        filter_section(section, is_premium=False)

        assert len(section.questions) == 3


class TestFilterCourse:
    """Whole-course view."""

    def build_course(self):
        course = Course(title="Interview Prep", price=5.0, currency="USD")
        course.set_sections([
            make_section([True, False], section_id="web", order=2),
            make_section([False, True, False, True, False], section_id="databases", order=1),
        ])
        return course

    def test_sections_are_ordered_and_filtered(self):
        course = self.build_course()

        visible = filter_course(course, is_premium=False)

        assert [s.id for s in visible.sections] == ["databases", "web"]
        assert [s.available_questions for s in visible.sections] == [1, 1]
        assert visible.user_subscription == "free"

    def test_premium_view_exposes_every_question(self):
        course = self.build_course()

        visible = filter_course(course, is_premium=True)

        assert visible.user_subscription == "premium"
        for section in visible.sections:
            assert section.available_questions == section.total_questions

    def test_header_fields_are_carried(self):
        course = self.build_course()

        visible = filter_course(course, is_premium=False, subscription="free")

        assert visible.title == "Interview Prep"
        assert visible.price == 5.0
        assert visible.total_questions == 7
        assert visible.total_free_questions == 2


class TestComputeTotals:
    """Derived totals."""

    def test_free_total_counts_openable_questions(self):
        sections = [
            make_section([True, True, True], cap=1, section_id="a"),
            make_section([False, False], cap=2, section_id="b"),
            make_section([True, False, True], cap=5, section_id="c"),
        ]

        assert compute_totals(sections) == (8, 3)

    def test_empty_course(self):
        assert compute_totals([]) == (0, 0)

    def test_set_sections_refreshes_totals(self):
        course = Course()
        course.set_sections([make_section([True, False, False], cap=1)])

        assert course.total_questions == 3
        assert course.total_free_questions == 1


class TestQuestionAccess:
    """Single question checks."""

    def test_free_question_is_open_to_everyone(self):
        question = TestHelpers.question("acid", is_free=True)

        assert can_access_question(question, is_premium=False)
        assert can_access_question(question, is_premium=True)

    def test_premium_question_requires_premium(self):
        question = TestHelpers.question("sharding")

        assert not can_access_question(question, is_premium=False)
        assert ensure_question_access(question, is_premium=True) is question

    def test_denial_raises_premium_required(self):
        question = TestHelpers.question("sharding")

        with pytest.raises(PremiumRequiredError) as exc_info:
            ensure_question_access(question, is_premium=False)

        assert exc_info.value.status_code == 403
        assert exc_info.value.flags == {"requires_premium": True}
