"""Repository classes encapsulating database operations.

`EntityRepository` implements list/get/create/update/delete once for any
table with a single-column identifier; the per-entity subclasses only
name their model and identifier and add the odd query of their own.
Repositories return SQLModel objects and commit their own changes.
"""

import uuid
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session, SQLModel, select

from . import models
from .errors import ConcurrencyConflict, DuplicateRecord

ModelT = TypeVar("ModelT", bound=SQLModel)

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class EntityRepository(Generic[ModelT]):
    """CRUD operations for one table keyed by `id_field`."""
    model: Type[ModelT]
    id_field: str

    def __init__(self, session: Session):
        self.session = session

    def record_id(self, record: ModelT) -> uuid.UUID:
        return getattr(record, self.id_field)

    def list(self, **filters: Any) -> List[ModelT]:
        """Return all rows, narrowed by equality on any non-None filter."""
        stmt = select(self.model)
        for field, value in filters.items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, field) == value)
        return self.session.exec(stmt).all()

    def get(self, record_id: uuid.UUID) -> Optional[ModelT]:
        """Get a row by primary key or `None`."""
        return self.session.get(self.model, record_id)

    def exists(self, record_id: uuid.UUID) -> bool:
        stmt = select(getattr(self.model, self.id_field)).where(getattr(self.model, self.id_field) == record_id)
        return self.session.exec(stmt).first() is not None

    def prepare(self, values: Dict[str, Any], existing: Optional[ModelT] = None) -> Dict[str, Any]:
        """Hook to transform incoming values before they are written."""
        return values

    def create(self, values: Dict[str, Any]) -> ModelT:
        """Insert a new row and return the managed instance.

        Raises `DuplicateRecord` if a row with the same identifier exists;
        any other integrity failure propagates.
        """
        record = self.model(**self.prepare(values))
        record_id = self.record_id(record)
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            if self.exists(record_id):
                raise DuplicateRecord(f"{self.model.__name__} {record_id} already exists")
            raise
        self.session.refresh(record)
        return record

    def update(self, record_id: uuid.UUID, values: Dict[str, Any]) -> Optional[ModelT]:
        """Copy `values` onto an existing row.

        Returns `None` when the row does not exist (or vanished while
        saving) and raises `ConcurrencyConflict` when the save hit a stale
        row that is still present.
        """
        record = self.get(record_id)
        if record is None:
            return None
        for field, value in self.prepare(values, existing=record).items():
            if field != self.id_field:
                setattr(record, field, value)
        self.session.add(record)
        try:
            self.session.commit()
        except StaleDataError:
            self.session.rollback()
            if not self.exists(record_id):
                return None
            raise ConcurrencyConflict(f"{self.model.__name__} {record_id} was modified concurrently")
        self.session.refresh(record)
        return record

    def delete(self, record_id: uuid.UUID) -> bool:
        """Delete a row; returns False if there was nothing to delete."""
        record = self.get(record_id)
        if record is None:
            return False
        self.session.delete(record)
        try:
            self.session.commit()
        except StaleDataError:
            # removed by a concurrent request
            self.session.rollback()
            return False
        return True


class UserRepository(EntityRepository[models.User]):
    """Users; secrets are stored as salted hashes, never as received."""
    model = models.User
    id_field = "user_id"

    def prepare(self, values, existing=None):
        values = dict(values)
        secret = values.pop("password_hash", "") or ""
        if secret:
            values["password_hash"] = PWD_CTX.hash(secret)
        elif existing is None:
            raise ValueError("passwordHash is required")
        return values

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()


class CourseRepository(EntityRepository[models.Course]):
    model = models.Course
    id_field = "course_id"

    def list_by_instructor(self, instructor_id: Optional[uuid.UUID]) -> List[models.Course]:
        return self.list(instructor_id=instructor_id)


class AssessmentRepository(EntityRepository[models.Assessment]):
    model = models.Assessment
    id_field = "assessment_id"


class ResultRepository(EntityRepository[models.Result]):
    model = models.Result
    id_field = "result_id"
