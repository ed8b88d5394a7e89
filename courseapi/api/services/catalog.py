"""
Catalog service: reads and admin edits of the active course document.

Every write goes through ``CourseRepository`` so the derived totals are
recomputed on each save.
"""

import re
from typing import Callable, Dict, List, Optional

from sqlalchemy import update
from sqlmodel import Session
import structlog

from courseapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from courseapi.db.base import DocumentRepository
from courseapi.db.models.course import (
    Course,
    CourseUpdate,
    Question,
    QuestionCreate,
    QuestionUpdate,
    Section,
    SectionCreate,
    SectionUpdate,
)
from courseapi.api.services.entitlements import (
    VisibleCourse,
    VisibleSection,
    ensure_question_access,
    filter_course,
    filter_section,
)

logger = structlog.get_logger(__name__)


def slugify(title: str) -> str:
    """Lower-case ``title`` and replace whitespace runs with ``-``."""
    slug = re.sub(r"\s+", "-", title.strip().lower())
    if not slug:
        raise ValidationError("Title must not be blank", details={"title": title})
    return slug


class CourseRepository(DocumentRepository[Course]):
    """Course documents, with the single active course as the usual target."""

    resource_name = "Course"

    def __init__(self, session: Session):
        super().__init__(session, Course)

    def get_active(self) -> Optional[Course]:
        return self.find_one(Course.is_active.is_(True))

    def require_active(self) -> Course:
        course = self.get_active()
        if course is None:
            raise NotFoundError("Course")
        return course

    def before_save(self, obj: Course) -> None:
        super().before_save(obj)
        obj.refresh_totals()

    def update_active(self, mutator: Callable[[Course], None]) -> Course:
        """Apply ``mutator`` to the active course and save it."""
        course = self.require_active()
        return self.update(course.id, mutator)

    def publish(self, course: Course) -> Course:
        """Store ``course`` as the active course, deactivating the previous one."""
        self.session.execute(
            update(Course).where(Course.is_active.is_(True)).values(is_active=False)
        )
        course.is_active = True
        return self.put(course)


class CatalogService:
    """
    Service for reading and editing the course catalog.

    Reads return the entitlement-filtered view; writes operate on the full
    document and are admin-only at the router level.
    """

    def __init__(self, session: Session):
        self.session = session
        self.courses = CourseRepository(session)

    # Reads

    def get_course(self) -> Course:
        """The active course, unfiltered."""
        return self.courses.require_active()

    def get_overview(self) -> Dict:
        """Public header and per-section counts; no question bodies."""
        course = self.courses.require_active()
        return {
            "id": course.id,
            "title": course.title,
            "description": course.description,
            "price": course.price,
            "currency": course.currency,
            "total_questions": course.total_questions,
            "total_free_questions": course.total_free_questions,
            "sections": [
                {
                    "id": section.id,
                    "title": section.title,
                    "description": section.description,
                    "icon": section.icon,
                    "order": section.order,
                    "total_questions": len(section.questions),
                    "free_questions": min(section.free_questions_count, section.free_tagged_count()),
                }
                for section in course.get_sections()
            ],
        }

    def get_content(self, is_premium: bool, subscription: Optional[str] = None) -> VisibleCourse:
        return filter_course(self.courses.require_active(), is_premium, subscription)

    def get_section(self, section_id: str, is_premium: bool) -> VisibleSection:
        return filter_section(self._require_section(self.get_course(), section_id), is_premium)

    def get_question(self, section_id: str, question_id: str, is_premium: bool) -> Question:
        """
        Fetch one question for the caller.

        Raises:
            NotFoundError: Unknown section or question
            PremiumRequiredError: Question is premium-only and caller is free
        """
        section = self._require_section(self.get_course(), section_id)
        question = section.find_question(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)
        return ensure_question_access(question, is_premium)

    # Admin writes

    def update_course_details(self, data: CourseUpdate) -> Course:
        changes = data.model_dump(exclude_unset=True)
        if "currency" in changes and changes["currency"]:
            changes["currency"] = changes["currency"].upper()

        def apply(course: Course) -> None:
            for field, value in changes.items():
                if value is not None:
                    setattr(course, field, value)

        course = self.courses.update_active(apply)
        logger.info("Course updated", course_id=course.id, fields=sorted(changes))
        return course

    def add_section(self, data: SectionCreate) -> Section:
        section_id = slugify(data.title)
        course = self.get_course()
        sections = course.get_sections()
        if any(section.id == section_id for section in sections):
            raise ConflictError("Section already exists", details={"section_id": section_id})

        order = data.order
        if order is None:
            order = max((section.order for section in sections), default=0) + 1

        section = Section(
            id=section_id,
            title=data.title,
            description=data.description,
            icon=data.icon,
            order=order,
        )
        self._save_sections(course, sections + [section])
        logger.info("Section added", section_id=section_id, order=order)
        return section

    def update_section(self, section_id: str, data: SectionUpdate) -> Section:
        course = self.get_course()
        sections = course.get_sections()
        section = self._require_section(course, section_id, sections)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(section, field, value)

        self._save_sections(course, sections)
        logger.info("Section updated", section_id=section_id)
        return section

    def delete_section(self, section_id: str) -> None:
        course = self.get_course()
        sections = course.get_sections()
        self._require_section(course, section_id, sections)
        self._save_sections(course, [section for section in sections if section.id != section_id])
        logger.info("Section deleted", section_id=section_id)

    def add_question(self, section_id: str, data: QuestionCreate) -> Question:
        course = self.get_course()
        sections = course.get_sections()
        section = self._require_section(course, section_id, sections)

        question_id = slugify(data.title)
        if section.find_question(question_id) is not None:
            raise ConflictError(
                "Question already exists",
                details={"section_id": section_id, "question_id": question_id}
            )

        question = Question(id=question_id, **data.model_dump())
        section.questions.append(question)
        self._save_sections(course, sections)
        logger.info("Question added", section_id=section_id, question_id=question_id)
        return question

    def update_question(self, section_id: str, question_id: str, data: QuestionUpdate) -> Question:
        course = self.get_course()
        sections = course.get_sections()
        section = self._require_section(course, section_id, sections)
        question = section.find_question(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(question, field, value)

        self._save_sections(course, sections)
        logger.info("Question updated", section_id=section_id, question_id=question_id)
        return question

    def delete_question(self, section_id: str, question_id: str) -> None:
        course = self.get_course()
        sections = course.get_sections()
        section = self._require_section(course, section_id, sections)
        if section.find_question(question_id) is None:
            raise NotFoundError("Question", question_id)

        section.questions = [question for question in section.questions if question.id != question_id]
        self._save_sections(course, sections)
        logger.info("Question deleted", section_id=section_id, question_id=question_id)

    def publish_course(self, course: Course) -> Course:
        course = self.courses.publish(course)
        logger.info(
            "Course published",
            course_id=course.id,
            total_questions=course.total_questions,
            total_free_questions=course.total_free_questions
        )
        return course

    # Helpers

    def _save_sections(self, course: Course, sections: List[Section]) -> Course:
        return self.courses.update(course.id, lambda stored: stored.set_sections(sections))

    @staticmethod
    def _require_section(course: Course, section_id: str, sections: Optional[List[Section]] = None) -> Section:
        if sections is None:
            section = course.find_section(section_id)
        else:
            section = next((s for s in sections if s.id == section_id), None)
        if section is None:
            raise NotFoundError("Section", section_id)
        return section
