"""FastAPI dependencies: DB session, catalog index, and the admin token guard.

The admin API has one credential: a shared bearer token (ADMIN_API_TOKEN).
With no token configured (development only) the guard lets requests through.
"""
import secrets
from typing import Generator, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from medorder.core.config import settings
from medorder.core.exceptions import ApiError
from medorder.db.session import SessionLocal
from medorder.services.catalog_index import CatalogIndex, get_catalog_index

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_index() -> CatalogIndex:
    return get_catalog_index()


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        return
    if not credentials or not secrets.compare_digest(credentials.credentials, expected):
        raise ApiError.unauthorized("missing or invalid admin token")
