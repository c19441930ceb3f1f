"""
Base repository class for data access layer.

Repositories keep query logic out of the services: a service asks for
"the seasons of this team overlapping these dates" and never builds the
SQLAlchemy query itself. Repositories add and flush but never commit; the
calling service owns the transaction.

Example:
    class SeasonRepository(BaseRepository[Season]):
        def find_by_team(self, team_id: str) -> List[Season]:
            return self.db.query(Season).filter(
                Season.team_id == team_id
            ).order_by(Season.start_date).all()
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from squadtrack.utils.timezone import utcnow

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def find_by_id_for_update(self, id: str) -> Optional[T]:
        """
        Find a record by ID and lock its row until the transaction ends.

        SQLite has no row locks; the clause is dropped there and the
        process-local keyed locks do the serialization.
        """
        return self.db.query(self.model_type).filter(
            self.model_type.id == id
        ).with_for_update().first()

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (flushed, not committed)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return instance

    def update(self, instance: T, **kwargs) -> T:
        """Set attributes on an already loaded record."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        if hasattr(instance, "updated_at"):
            instance.updated_at = utcnow()
        return instance

    def delete(self, instance: T) -> None:
        self.db.delete(instance)

    # ========================================================================
    # Query Builders
    # ========================================================================

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    # ========================================================================
    # Aggregates
    # ========================================================================

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0

    # ========================================================================
    # Save Operations
    # ========================================================================

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def refresh(self, instance: T) -> T:
        """Refresh an instance from the database."""
        self.db.refresh(instance)
        return instance
