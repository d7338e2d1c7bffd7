"""Durable storage for learned corrections and historical expenses.

Backed by SQLAlchemy so the same code runs against local SQLite or a
server database selected through ``DATABASE_URL``. The classifier owns only
the ``expense_learning_data`` table; ``expenses`` belongs to the surrounding
application and is read for bootstrap training and history lookups.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional, Sequence

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    func,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .models import Category, CorrectionEntry

logger = logging.getLogger(__name__)

ITEM_NAME_MAX_LENGTH = 100

Base = declarative_base()

# --- Models ---


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String(255), nullable=False)
    expense_type = Column(String(32), nullable=False)
    user_id = Column(Integer, nullable=True, index=True)


class ExpenseLearningData(Base):
    __tablename__ = "expense_learning_data"
    __table_args__ = (
        UniqueConstraint("item_name", "user_id", name="uq_learning_item_user"),
        # NULLs never collide under UNIQUE, so anonymous corrections need their own index.
        Index(
            "uq_learning_item_anonymous",
            "item_name",
            unique=True,
            sqlite_where=text("user_id IS NULL"),
            postgresql_where=text("user_id IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String(ITEM_NAME_MAX_LENGTH), nullable=False)
    expense_type = Column(String(32), nullable=False)
    correction_count = Column(Integer, nullable=False, default=0)
    user_id = Column(Integer, nullable=True)
    last_updated = Column(DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "item_name": self.item_name,
            "expense_type": self.expense_type,
            "correction_count": self.correction_count,
            "user_id": self.user_id,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass
class ItemHistory:
    """What a user has previously filed an item under."""

    top_category: Optional[Category] = None
    occurrences: int = 0


# --- Engine / sessions ---


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        kwargs: dict = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # Share the single in-memory database across sessions.
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **kwargs)
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


# --- Store ---


class CorrectionStore:
    """Reads and writes the tables the classifier depends on."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @retry(
        # IntegrityError: a concurrent flush inserted the same key first; the
        # next attempt takes the increment path.
        retry=retry_if_exception_type((OperationalError, IntegrityError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        reraise=True,
    )
    def persist(self, entries: Sequence[CorrectionEntry], user_id: Optional[int] = None) -> int:
        """Upsert every entry inside a single transaction.

        Existing rows for the same item and user accumulate the correction
        count and take the latest category and timestamp. The increment is
        evaluated by the database, so concurrent flushes of the same item
        never lose counts.

        Returns:
            Number of rows written.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: After rolling back the whole batch.
        """
        if not entries:
            return 0

        now = datetime.now(timezone.utc).replace(tzinfo=None)
        with self.database.session() as session, session.begin():
            for entry in entries:
                self._upsert(session, entry, user_id, now)
        return len(entries)

    @staticmethod
    def _upsert(
        session: Session,
        entry: CorrectionEntry,
        user_id: Optional[int],
        now: datetime,
    ) -> None:
        item_name = entry.text[:ITEM_NAME_MAX_LENGTH]
        expense_type = entry.category.value
        increment = (
            update(ExpenseLearningData)
            .where(
                ExpenseLearningData.item_name == item_name,
                _user_clause(ExpenseLearningData.user_id, user_id),
            )
            .values(
                correction_count=ExpenseLearningData.correction_count + entry.count,
                expense_type=expense_type,
                last_updated=now,
            )
            .execution_options(synchronize_session=False)
        )
        if session.execute(increment).rowcount:
            return
        session.execute(
            insert(ExpenseLearningData).values(
                item_name=item_name,
                expense_type=expense_type,
                correction_count=entry.count,
                user_id=user_id,
                last_updated=now,
            )
        )

    def load_historical_expenses(self, limit: int = 1000) -> list[tuple[str, str]]:
        """Lower-cased ``(item_name, expense_type)`` pairs, at most ``limit``."""
        with self.database.session() as session:
            rows = session.execute(
                select(func.lower(Expense.item_name), Expense.expense_type).limit(limit)
            ).all()
        return [(name, expense_type) for name, expense_type in rows]

    def item_history(self, item_name: str, user_id: Optional[int]) -> ItemHistory:
        """Most frequent non-Other category and total count for a user's item."""
        name_match = func.lower(Expense.item_name) == item_name.lower()
        user_match = _user_clause(Expense.user_id, user_id)
        with self.database.session() as session:
            top = session.execute(
                select(Expense.expense_type, func.count().label("n"))
                .where(name_match, user_match, Expense.expense_type != Category.OTHER.value)
                .group_by(Expense.expense_type)
                .order_by(func.count().desc())
                .limit(1)
            ).first()
            occurrences = session.execute(
                select(func.count()).select_from(Expense).where(name_match, user_match)
            ).scalar_one()

        top_category = None
        if top is not None:
            try:
                top_category = Category.parse(top[0])
            except ValueError:
                logger.warning("Ignoring unknown historical category %r for %r", top[0], item_name)
        return ItemHistory(top_category=top_category, occurrences=occurrences)

    def list_corrections(self, limit: int = 50) -> list[ExpenseLearningData]:
        with self.database.session() as session:
            return list(
                session.execute(
                    select(ExpenseLearningData)
                    .order_by(ExpenseLearningData.last_updated.desc())
                    .limit(limit)
                ).scalars()
            )


def _user_clause(column, user_id: Optional[int]):
    return column.is_(None) if user_id is None else column == user_id
