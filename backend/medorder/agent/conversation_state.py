"""
Per-account conversation sessions, held in process memory.

One live session per account. A session is created when a flow command
arrives and destroyed on commit, cancel or feedback completion. Nothing here
survives a restart: an unconfirmed order is lost and the caller starts over.
Running more than one process needs a shared store behind the same
SessionStore interface.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from medorder.services.item_resolver import ResolvedLine


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_ITEMS = "awaiting_items"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_FEEDBACK = "awaiting_feedback"


@dataclass
class ChatSession:
    account_id: int
    phase: Phase = Phase.IDLE
    draft: List[ResolvedLine] = field(default_factory=list)


class SessionStore:
    """Keyed session storage with an asyncio.Lock per account."""

    def __init__(self):
        self._sessions: Dict[int, ChatSession] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def get(self, account_id: int) -> Optional[ChatSession]:
        return self._sessions.get(account_id)

    def phase(self, account_id: int) -> Phase:
        session = self._sessions.get(account_id)
        return session.phase if session else Phase.IDLE

    def create(self, account_id: int, phase: Phase) -> ChatSession:
        """Start a fresh session, discarding any previous one for this account."""
        session = ChatSession(account_id=account_id, phase=phase)
        self._sessions[account_id] = session
        return session

    def delete(self, account_id: int) -> None:
        self._sessions.pop(account_id, None)

    def lock(self, account_id: int) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._sessions)
