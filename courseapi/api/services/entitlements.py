"""
Entitlement filtering for course content.

Pure functions: given a course (or section, or question) and whether the
caller is premium, decide what the caller may see. Nothing here touches the
database.

Free users see, per section, the questions tagged ``is_free`` in their
original order, truncated to the section's ``free_questions_count``. Premium
users see everything.
"""

from itertools import islice
from typing import List, Optional

from sqlmodel import Field, SQLModel

from courseapi.core.config import SubscriptionTier
from courseapi.core.exceptions import PremiumRequiredError
from courseapi.db.models.course import Course, Question, Section


class VisibleSection(SQLModel):
    """A section as a particular caller sees it."""
    id: str
    title: str
    description: str = ""
    icon: Optional[str] = None
    order: int = 0
    questions: List[Question] = Field(default_factory=list)
    total_questions: int = 0
    available_questions: int = 0
    free_questions_count: int = 0


class VisibleCourse(SQLModel):
    """The course header plus the caller's filtered sections."""
    id: str
    title: str
    description: str
    price: float
    currency: str
    total_questions: int
    total_free_questions: int
    sections: List[VisibleSection] = Field(default_factory=list)
    user_subscription: str = SubscriptionTier.FREE.value


def visible_questions(section: Section, is_premium: bool) -> List[Question]:
    """Questions of ``section`` the caller may open, in display order."""
    if is_premium:
        return list(section.questions)
    free_questions = (question for question in section.questions if question.is_free)
    return list(islice(free_questions, section.free_questions_count))


def filter_section(section: Section, is_premium: bool) -> VisibleSection:
    questions = visible_questions(section, is_premium)
    return VisibleSection(
        id=section.id,
        title=section.title,
        description=section.description,
        icon=section.icon,
        order=section.order,
        questions=questions,
        total_questions=len(section.questions),
        available_questions=len(questions),
        free_questions_count=section.free_questions_count,
    )


def filter_course(course: Course, is_premium: bool, subscription: Optional[str] = None) -> VisibleCourse:
    """
    Apply the entitlement filter to every section of ``course``.

    Args:
        course: The active course document
        is_premium: Whether the caller holds a premium subscription
        subscription: Subscription tier echoed back to the client; derived
            from ``is_premium`` when omitted

    Returns:
        VisibleCourse with sections ordered by ``order``
    """
    if subscription is None:
        subscription = SubscriptionTier.PREMIUM.value if is_premium else SubscriptionTier.FREE.value

    return VisibleCourse(
        id=course.id,
        title=course.title,
        description=course.description,
        price=course.price,
        currency=course.currency,
        total_questions=course.total_questions,
        total_free_questions=course.total_free_questions,
        sections=[filter_section(section, is_premium) for section in course.get_sections()],
        user_subscription=subscription,
    )


def can_access_question(question: Question, is_premium: bool) -> bool:
    return is_premium or question.is_free


def ensure_question_access(question: Question, is_premium: bool) -> Question:
    """Return ``question`` or raise PremiumRequiredError."""
    if not can_access_question(question, is_premium):
        raise PremiumRequiredError("Premium subscription required to access this question")
    return question
