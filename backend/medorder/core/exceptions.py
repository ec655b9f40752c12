"""
Error taxonomy for order intake, plus safe HTTP errors for the admin API.

Per-line problems (ParseError, ResolutionError) are plain values collected by
the parser and resolver so a caller sees every mistake in one reply. The
exceptions below cover whole-interaction failures.
"""
import logging
from enum import Enum
from typing import Optional, Sequence

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class OrderIntakeError(Exception):
    """Base class for errors raised by the order intake core."""


class AccessDenied(OrderIntakeError):
    """Caller identity does not map to a registered account."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Unknown identity: {identity}")


class SessionLost(OrderIntakeError):
    """A confirm/edit arrived for a session that no longer exists (e.g. after a restart)."""

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"No live session for account {account_id}")


class CommitErrorReason(str, Enum):
    STOCK_CHANGED = "stock_changed"
    PERSISTENCE_FAILURE = "persistence_failure"


class CommitError(OrderIntakeError):
    """
    Fulfillment transaction failed and was rolled back.

    offending_lines lists (item name, requested, available) for STOCK_CHANGED.
    """

    def __init__(
        self,
        reason: CommitErrorReason,
        offending_lines: Optional[Sequence[tuple]] = None,
        detail: str = "",
    ):
        self.reason = reason
        self.offending_lines = list(offending_lines or [])
        self.detail = detail
        super().__init__(f"{reason.value}: {detail or self.offending_lines}")


class ApiError:
    """Admin API exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Same response for a missing or a wrong token."""
        logger.warning(f"Unauthorized admin API attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """400 for input validation. OK to include details since the caller caused it."""
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def upstream_failed(detail: str = "Upstream service failed") -> HTTPException:
        logger.error(f"Upstream failure: {detail}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )

    @staticmethod
    def unavailable(detail: str) -> HTTPException:
        logger.warning(f"Service unavailable: {detail}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )
