"""Create all tables. Run on app startup."""
from medorder.db.base import Base
from medorder.db.session import engine
from medorder.models import account, catalog, order, feedback  # noqa: F401 - register models


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
