"""Shared pytest fixtures: throwaway SQLite databases, a seeded catalog, a recording notifier."""
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medorder.agent.conversation_state import SessionStore
from medorder.agent.order_flow import OrderFlow
from medorder.db.init_db import init_db
from medorder.models.account import Account
from medorder.models.catalog import CatalogItem
from medorder.services.catalog_index import CatalogIndex
from medorder.services.notifier import NotificationSink

CATALOG = [
    ("Paracetamol", 100, "12.50"),
    ("Amoxicillin", 50, "45.00"),
    ("Cetirizine", 12, "18.00"),
    ("Ibuprofen", 5, "22.00"),
]


class RecordingNotifier(NotificationSink):
    """Keeps every outgoing message instead of sending it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def notify(self, chat_id, text, buttons=None, markdown=False) -> bool:
        self.sent.append({"chat_id": chat_id, "text": text, "buttons": buttons, "markdown": markdown})
        return not self.fail

    def texts(self, chat_id=None):
        return [m["text"] for m in self.sent if chat_id is None or m["chat_id"] == chat_id]

    @property
    def last(self):
        return self.sent[-1]["text"] if self.sent else None


def seed_catalog(db, rows=CATALOG):
    items = {}
    for name, quantity, price in rows:
        item = CatalogItem(name=name, quantity_available=quantity, unit_price=Decimal(price))
        db.add(item)
        items[name] = item
    db.commit()
    return items


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads through a single connection."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def file_engine(tmp_path: Path):
    """File-backed SQLite: each session gets its own connection, like production."""
    eng = create_engine(
        f"sqlite:///{tmp_path / 'medorder-test.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    init_db(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    return seed_catalog(db)


@pytest.fixture
def account(db):
    acc = Account(display_name="Sharma Medicals", telegram_id="1001", address="MG Road")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def other_account(db):
    acc = Account(display_name="City Pharmacy", telegram_id="1002")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def index(db, catalog):
    return CatalogIndex(score_cutoff=60).refresh(db)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def flow(index, notifier):
    return OrderFlow(SessionStore(), index, notifier, low_stock_threshold=10)
