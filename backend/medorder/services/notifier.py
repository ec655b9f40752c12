"""
Notification sink used by the order flow and the reminder sweep.

Delivery is fire-and-forget: implementations log failures and return False,
they never raise into the caller.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

# (label, callback data) - rendered as inline buttons by the chat transport
Button = Tuple[str, str]
ButtonRows = Sequence[Sequence[Button]]


class NotificationSink(ABC):
    @abstractmethod
    async def notify(
        self,
        chat_id,
        text: str,
        buttons: Optional[ButtonRows] = None,
        markdown: bool = False,
    ) -> bool:
        """Send one message. True if delivered."""


CONFIRM_ORDER = "confirm_order"
EDIT_ORDER = "edit_order"

CONFIRMATION_BUTTONS: List[List[Button]] = [
    [("✅ Confirm", CONFIRM_ORDER), ("✏️ Edit", EDIT_ORDER)],
]
