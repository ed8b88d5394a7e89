"""
Courses router: the catalog as seen through the caller's entitlements.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from courseapi.core.security import get_current_active_user
from courseapi.db.session import get_session
from courseapi.db.models.course import Question
from courseapi.db.models.user import User
from courseapi.api.services.catalog import CatalogService
from courseapi.api.services.entitlements import VisibleCourse, VisibleSection

router = APIRouter(prefix="/courses", tags=["courses"])


def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)


@router.get("/overview")
def get_course_overview(catalog: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    """Public course header with per-section question counts."""
    return catalog.get_overview()


@router.get("/content", response_model=VisibleCourse)
def get_course_content(
    current_user: User = Depends(get_current_active_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Full catalog filtered by the caller's subscription."""
    return catalog.get_content(current_user.is_premium, current_user.subscription)


@router.get("/section/{section_id}", response_model=VisibleSection)
def get_section(
    section_id: str,
    current_user: User = Depends(get_current_active_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return catalog.get_section(section_id, current_user.is_premium)


@router.get("/question/{section_id}/{question_id}", response_model=Question)
def get_question(
    section_id: str,
    question_id: str,
    current_user: User = Depends(get_current_active_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Single question; premium-only questions answer 403 with ``requires_premium``."""
    return catalog.get_question(section_id, question_id, current_user.is_premium)
