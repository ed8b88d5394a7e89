# Database models
from .user import User, UserUpdate
from .course import (
    Course, Section, Question, compute_totals,
    CourseUpdate, SectionCreate, SectionUpdate, QuestionCreate, QuestionUpdate,
)
from .transaction import Transaction

__all__ = [
    # User models
    "User", "UserUpdate",
    # Course models
    "Course", "Section", "Question", "compute_totals",
    "CourseUpdate", "SectionCreate", "SectionUpdate", "QuestionCreate", "QuestionUpdate",
    # Transaction models
    "Transaction",
]
