"""Shared test fixtures for expense-classifier tests."""

from __future__ import annotations

from typing import Iterator

import pytest

from expense_classifier.classifier import ExpenseClassifier
from expense_classifier.config import ClassifierSettings
from expense_classifier.storage import CorrectionStore, Database, Expense


class StubTagger:
    """Deterministic tagger so tests never need NLTK model data."""

    VERBS = frozenset({"pay", "paid", "buy", "bought", "eat", "ride", "watch"})
    ADJECTIVES = frozenset({"cheap", "new", "expensive", "big"})

    def tag(self, tokens: list[str]) -> list[tuple[str, str]]:
        tagged = []
        for token in tokens:
            if token.isdigit():
                tagged.append((token, "CD"))
            elif token in self.VERBS:
                tagged.append((token, "VBD" if token.endswith("d") or token == "bought" else "VB"))
            elif token in self.ADJECTIVES:
                tagged.append((token, "JJ"))
            else:
                tagged.append((token, "NN"))
        return tagged


@pytest.fixture
def tagger() -> StubTagger:
    return StubTagger()


@pytest.fixture
def settings() -> ClassifierSettings:
    """Synchronous training with a short iteration budget."""
    return ClassifierSettings(
        background_training=False,
        full_train_iterations=60,
        incremental_iterations=40,
        train_timeout=30.0,
        database_url="sqlite://",
    )


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def store(database: Database) -> CorrectionStore:
    return CorrectionStore(database)


@pytest.fixture
def classifier(
    settings: ClassifierSettings,
    store: CorrectionStore,
    tagger: StubTagger,
) -> Iterator[ExpenseClassifier]:
    """Seeded classifier backed by an in-memory database."""
    clf = ExpenseClassifier(settings=settings, store=store, tagger=tagger)
    yield clf
    clf.close()


@pytest.fixture
def add_expenses(database: Database):
    """Insert historical expenses: ``add_expenses([(name, type, user_id), ...])``."""

    def _add(rows: list[tuple[str, str, int | None]]) -> None:
        with database.session() as session, session.begin():
            for item_name, expense_type, user_id in rows:
                session.add(Expense(item_name=item_name, expense_type=expense_type, user_id=user_id))

    return _add
