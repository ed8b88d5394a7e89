"""
Course catalog models.

A course is stored as a single document row: the ordered sections and their
questions live in a JSON column, while the header fields and the derived
totals are regular columns. Only one course may be active at a time, which is
enforced by a partial unique index on ``is_active``.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import Column, Index, JSON, text
from sqlmodel import Field, SQLModel

from courseapi.core.config import (
    Difficulty,
    DEFAULT_COURSE_TITLE,
    DEFAULT_COURSE_DESCRIPTION,
    DEFAULT_COURSE_PRICE,
    DEFAULT_COURSE_CURRENCY,
    DEFAULT_FREE_QUESTIONS_PER_SECTION,
)
from courseapi.db.base import utc_now


class Question(SQLModel):
    """A single interview question with its answer."""
    id: str
    title: str
    question: str
    answer: str
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    tags: List[str] = Field(default_factory=list)
    code_example: Optional[str] = None
    resources: List[str] = Field(default_factory=list)
    is_free: bool = False


class Section(SQLModel):
    """An ordered group of questions inside the course."""
    id: str
    title: str
    description: str = ""
    icon: Optional[str] = None
    order: int = 0
    questions: List[Question] = Field(default_factory=list)
    free_questions_count: int = Field(default=DEFAULT_FREE_QUESTIONS_PER_SECTION, ge=0)

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def free_tagged_count(self) -> int:
        return sum(1 for question in self.questions if question.is_free)


def compute_totals(sections: List[Section]) -> Tuple[int, int]:
    """
    Derive course totals from its sections.

    Returns:
        (total_questions, total_free_questions) where the free total counts the
        questions a free user can actually open in each section.
    """
    total_questions = sum(len(section.questions) for section in sections)
    total_free_questions = sum(
        min(section.free_questions_count, section.free_tagged_count())
        for section in sections
    )
    return total_questions, total_free_questions


class Course(SQLModel, table=True):
    """
    The course document.

    ``sections`` holds the serialized Section list. Use ``get_sections`` and
    ``set_sections`` rather than touching it directly so the derived totals
    stay in step.
    """
    __tablename__ = "courses"
    __table_args__ = (
        Index(
            "uq_courses_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )
    title: str = Field(default=DEFAULT_COURSE_TITLE)
    description: str = Field(default=DEFAULT_COURSE_DESCRIPTION)
    price: float = Field(default=DEFAULT_COURSE_PRICE, ge=0)
    currency: str = Field(default=DEFAULT_COURSE_CURRENCY)
    sections: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False)
    )
    total_questions: int = Field(default=0)
    total_free_questions: int = Field(default=0)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def get_sections(self) -> List[Section]:
        """Sections in display order."""
        sections = [Section.model_validate(raw) for raw in self.sections or []]
        return sorted(sections, key=lambda section: section.order)

    def set_sections(self, sections: List[Section]) -> None:
        # Reassign so the JSON column is flagged dirty
        self.sections = [section.model_dump(mode="json") for section in sections]
        self.refresh_totals()

    def refresh_totals(self) -> None:
        self.total_questions, self.total_free_questions = compute_totals(self.get_sections())

    def find_section(self, section_id: str) -> Optional[Section]:
        for section in self.get_sections():
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> dict:
        """Full course document, including answers (admin view)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "sections": [section.model_dump(mode="json") for section in self.get_sections()],
            "total_questions": self.total_questions,
            "total_free_questions": self.total_free_questions,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat()
        }


# Admin write schemas
class CourseUpdate(SQLModel):
    """Course header update."""
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None


class SectionCreate(SQLModel):
    """New section payload."""
    title: str = Field(min_length=1)
    description: str = ""
    icon: Optional[str] = None
    order: Optional[int] = None


class SectionUpdate(SQLModel):
    """Section update payload."""
    title: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None
    free_questions_count: Optional[int] = Field(default=None, ge=0)


class QuestionCreate(SQLModel):
    """New question payload."""
    title: str = Field(min_length=1)
    question: str
    answer: str
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    tags: List[str] = Field(default_factory=list)
    code_example: Optional[str] = None
    resources: List[str] = Field(default_factory=list)
    is_free: bool = False


class QuestionUpdate(SQLModel):
    """Question edit payload."""
    title: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    code_example: Optional[str] = None
    resources: Optional[List[str]] = None
    is_free: Optional[bool] = None
