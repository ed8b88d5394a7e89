"""
Tests for the catalog service and course repository.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from courseapi.api.services.catalog import CatalogService, CourseRepository, slugify
from courseapi.core.exceptions import ConflictError, NotFoundError, PremiumRequiredError, ValidationError
from courseapi.db.models.course import (
    Course,
    CourseUpdate,
    QuestionCreate,
    QuestionUpdate,
    SectionCreate,
    SectionUpdate,
)


class TestSlugify:
    def test_lowercases_and_joins_whitespace(self):
        assert slugify("  Design   Patterns ") == "design-patterns"

    def test_keeps_punctuation(self):
        assert slugify("N+1 Problem") == "n+1-problem"

    def test_blank_title_is_rejected(self):
        with pytest.raises(ValidationError):
            slugify("   ")


class TestCourseRepository:
    """Active course lookups and the single-active rule."""

    def test_get_active_returns_seeded_course(self, session, course):
        assert CourseRepository(session).get_active().id == course.id

    def test_require_active_without_course_raises(self, session):
        with pytest.raises(NotFoundError):
            CourseRepository(session).require_active()

    def test_database_rejects_second_active_course(self, session, course):
        session.add(Course(title="Duplicate", is_active=True))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_inactive_courses_are_unrestricted(self, session, course):
        session.add(Course(title="Draft A", is_active=False))
        session.add(Course(title="Draft B", is_active=False))
        session.commit()

        assert CourseRepository(session).get_active().id == course.id

    def test_publish_replaces_active_course(self, session, course):
        repository = CourseRepository(session)

        published = repository.publish(Course(title="Second Edition"))

        assert repository.get_active().id == published.id
        session.refresh(course)
        assert course.is_active is False

    def test_totals_are_recomputed_on_save(self, session, course):
        repository = CourseRepository(session)

        def drop_databases(stored):
            stored.set_sections([s for s in stored.get_sections() if s.id != "databases"])
            # Stale totals must be overwritten on save
            stored.total_questions = 99

        updated = repository.update_active(drop_databases)

        assert updated.total_questions == 2
        assert updated.total_free_questions == 1


class TestCatalogReads:
    """Filtered reads."""

    def test_overview_has_counts_but_no_questions(self, session, course):
        overview = CatalogService(session).get_overview()

        assert overview["total_questions"] == 7
        assert overview["total_free_questions"] == 2
        assert [s["id"] for s in overview["sections"]] == ["databases", "design-patterns"]
        assert overview["sections"][0]["total_questions"] == 5
        assert overview["sections"][0]["free_questions"] == 1
        assert "questions" not in overview["sections"][0]

    def test_content_for_free_user(self, session, course):
        content = CatalogService(session).get_content(is_premium=False)

        databases = content.sections[0]
        assert [q.id for q in databases.questions] == ["acid-properties"]
        assert databases.total_questions == 5

    def test_get_section_unknown_raises_not_found(self, session, course):
        with pytest.raises(NotFoundError):
            CatalogService(session).get_section("missing", is_premium=True)

    def test_get_question_free_user_premium_question(self, session, course):
        with pytest.raises(PremiumRequiredError):
            CatalogService(session).get_question("databases", "sharding", is_premium=False)

    def test_get_question_free_tagged(self, session, course):
        question = CatalogService(session).get_question("databases", "acid-properties", is_premium=False)

        assert question.answer == "Answer for acid-properties."

    def test_get_question_unknown_is_not_found_not_forbidden(self, session, course):
        with pytest.raises(NotFoundError):
            CatalogService(session).get_question("databases", "missing", is_premium=False)


class TestCatalogWrites:
    """Admin edits keep totals in step."""

    def test_update_course_details(self, session, course):
        updated = CatalogService(session).update_course_details(
            CourseUpdate(title="New Title", price=9.5, currency="eur")
        )

        assert updated.title == "New Title"
        assert updated.price == 9.5
        assert updated.currency == "EUR"

    def test_add_section_generates_slug_and_order(self, session, course):
        section = CatalogService(session).add_section(SectionCreate(title="System Design"))

        assert section.id == "system-design"
        assert section.order == 3
        session.refresh(course)
        assert course.find_section("system-design") is not None

    def test_add_duplicate_section_conflicts(self, session, course):
        with pytest.raises(ConflictError):
            CatalogService(session).add_section(SectionCreate(title="Databases"))

    def test_update_section_free_cap_changes_free_total(self, session, course):
        catalog = CatalogService(session)

        catalog.update_section("databases", SectionUpdate(free_questions_count=2))

        assert catalog.get_course().total_free_questions == 3

    def test_delete_section(self, session, course):
        catalog = CatalogService(session)

        catalog.delete_section("design-patterns")

        stored = catalog.get_course()
        assert [s.id for s in stored.get_sections()] == ["databases"]
        assert stored.total_questions == 5

    def test_add_question_updates_totals(self, session, course):
        catalog = CatalogService(session)

        question = catalog.add_question(
            "design-patterns",
            QuestionCreate(title="Observer Pattern", question="What is it?", answer="Pub/sub.", is_free=True)
        )

        assert question.id == "observer-pattern"
        stored = catalog.get_course()
        assert stored.total_questions == 8
        # Cap of 1 means the extra free question is not openable by free users
        assert stored.total_free_questions == 2

    def test_add_duplicate_question_conflicts(self, session, course):
        with pytest.raises(ConflictError):
            CatalogService(session).add_question(
                "databases",
                QuestionCreate(title="Indexes", question="?", answer="!")
            )

    def test_update_question_toggles_free_flag(self, session, course):
        catalog = CatalogService(session)

        catalog.update_question("design-patterns", "inversion-of-control", QuestionUpdate(is_free=False))

        assert catalog.get_course().total_free_questions == 1

    def test_delete_question(self, session, course):
        catalog = CatalogService(session)

        catalog.delete_question("databases", "acid-properties")

        stored = catalog.get_course()
        assert stored.total_questions == 6
        section = stored.find_section("databases")
        assert [q.id for q in section.questions if q.is_free] == ["n+1-problem"]

    def test_delete_unknown_question_raises(self, session, course):
        with pytest.raises(NotFoundError):
            CatalogService(session).delete_question("databases", "missing")
