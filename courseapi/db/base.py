"""
Database base utilities and common operations.

Repositories expose a small document-store surface over SQLModel tables:
``get``, ``put``, ``find_one`` and ``update(key, mutator)``.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar
from sqlmodel import SQLModel, Session, select

from courseapi.core.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=SQLModel)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DocumentRepository(Generic[ModelType]):
    """Base document operations for a single table model."""

    resource_name = "Document"

    def __init__(self, session: Session, model: Type[ModelType]):
        self.session = session
        self.model = model

    def get(self, key: Any) -> Optional[ModelType]:
        """Get a single record by primary key."""
        return self.session.get(self.model, key)

    def require(self, key: Any) -> ModelType:
        """Get a record by primary key or raise NotFoundError."""
        obj = self.get(key)
        if obj is None:
            raise NotFoundError(self.resource_name, str(key))
        return obj

    def find_one(self, *criteria) -> Optional[ModelType]:
        """Get the first record matching all criteria."""
        statement = select(self.model).where(*criteria)
        return self.session.exec(statement).first()

    def find_many(self, *criteria, order_by=None, limit: Optional[int] = None) -> List[ModelType]:
        """Get records matching all criteria."""
        statement = select(self.model)
        if criteria:
            statement = statement.where(*criteria)
        if order_by is not None:
            statement = statement.order_by(order_by)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def put(self, obj: ModelType) -> ModelType:
        """Insert or replace a record."""
        self.before_save(obj)
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def update(self, key: Any, mutator: Callable[[ModelType], None]) -> ModelType:
        """Apply ``mutator`` to the stored record and save it."""
        obj = self.require(key)
        mutator(obj)
        return self.put(obj)

    def before_save(self, obj: ModelType) -> None:
        """Hook run on every write path."""
        if hasattr(obj, "updated_at"):
            obj.updated_at = utc_now()
