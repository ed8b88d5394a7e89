"""
Admin router: dashboard stats, user management and course editing.

Every route requires the ``admin`` role.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from courseapi.core.security import require_admin
from courseapi.db.session import get_session
from courseapi.db.models.course import (
    CourseUpdate,
    QuestionCreate,
    QuestionUpdate,
    SectionCreate,
    SectionUpdate,
)
from courseapi.db.models.user import UserUpdate
from courseapi.api.services.catalog import CatalogService
from courseapi.api.services.subscriptions import SubscriptionLedger
from courseapi.api.services.transactions import TransactionStore

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

RECENT_ITEMS = 5


@router.get("/stats")
def get_stats(session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Dashboard figures: users, conversion and revenue."""
    ledger = SubscriptionLedger(session)
    transactions = TransactionStore(session)

    total_users = ledger.count_users()
    premium_users = ledger.count_premium()
    conversion_rate = round(premium_users / total_users * 100, 2) if total_users else 0.0
    total_transactions = transactions.count()
    total_revenue = transactions.succeeded_revenue()
    average_revenue = round(total_revenue / total_transactions, 2) if total_transactions else 0.0

    return {
        "total_users": total_users,
        "premium_users": premium_users,
        "free_users": total_users - premium_users,
        "conversion_rate": conversion_rate,
        "total_transactions": total_transactions,
        "total_revenue": total_revenue,
        "average_revenue": average_revenue,
        "recent_transactions": [t.to_dict() for t in transactions.recent(RECENT_ITEMS)],
        "recent_users": [u.to_dict() for u in ledger.recent_users(RECENT_ITEMS)],
    }


# Users

@router.get("/users")
def list_users(skip: int = 0, limit: int = 100, session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
    return [user.to_dict() for user in SubscriptionLedger(session).list_users(skip=skip, limit=limit)]


@router.get("/users/{user_id}")
def get_user(user_id: str, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """User profile with their transaction history."""
    user = SubscriptionLedger(session).get_user(user_id)
    return {
        "user": user.to_dict(),
        "transactions": [t.to_dict() for t in TransactionStore(session).list_for_user(user_id)],
    }


@router.put("/users/{user_id}")
def update_user(user_id: str, data: UserUpdate, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Edit name, email or role. Subscription state is managed by payments only."""
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True, mode="json").items()
        if value is not None
    }
    return SubscriptionLedger(session).update_profile(user_id, changes).to_dict()


# Transactions

@router.get("/transactions")
def list_transactions(session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
    """All transactions, newest first, with the paying user's name and email."""
    results = []
    for transaction, user in TransactionStore(session).list_with_users():
        item = transaction.to_dict()
        item["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
        results.append(item)
    return results


# Course

def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)


@router.get("/course")
def get_course(catalog: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    """Full course document, answers included."""
    return catalog.get_course().to_dict()


@router.put("/course")
def update_course(data: CourseUpdate, catalog: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    return catalog.update_course_details(data).to_dict()


@router.post("/sections", status_code=status.HTTP_201_CREATED)
def create_section(data: SectionCreate, catalog: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    return catalog.add_section(data).model_dump(mode="json")


@router.put("/sections/{section_id}")
def update_section(
    section_id: str,
    data: SectionUpdate,
    catalog: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    return catalog.update_section(section_id, data).model_dump(mode="json")


@router.delete("/sections/{section_id}")
def delete_section(section_id: str, catalog: CatalogService = Depends(get_catalog_service)) -> Dict[str, str]:
    catalog.delete_section(section_id)
    return {"message": "Section deleted"}


@router.post("/sections/{section_id}/questions", status_code=status.HTTP_201_CREATED)
def create_question(
    section_id: str,
    data: QuestionCreate,
    catalog: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    return catalog.add_question(section_id, data).model_dump(mode="json")


@router.put("/sections/{section_id}/questions/{question_id}")
def update_question(
    section_id: str,
    question_id: str,
    data: QuestionUpdate,
    catalog: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    return catalog.update_question(section_id, question_id, data).model_dump(mode="json")


@router.delete("/sections/{section_id}/questions/{question_id}")
def delete_question(
    section_id: str,
    question_id: str,
    catalog: CatalogService = Depends(get_catalog_service)
) -> Dict[str, str]:
    catalog.delete_question(section_id, question_id)
    return {"message": "Question deleted"}
