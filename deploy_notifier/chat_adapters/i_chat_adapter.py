"""Chat adapter abstraction."""

from __future__ import annotations

import abc
from typing import List, Optional

from ..core.models import ChatMessage, SendOptions


class IChatAdapter(abc.ABC):
    """Abstraction for chat services that deploy notices are posted to."""

    @abc.abstractmethod
    async def send(
        self, room: str, sender: str, message: str, options: SendOptions
    ) -> Optional[str]:
        """Post a message to a room as ``sender``.

        Returns:
            The message timestamp/ID if available, None otherwise.
        """

    @abc.abstractmethod
    async def history(self, room: str, limit: int = 50) -> List[ChatMessage]:
        """Return recent room messages, newest first."""

    async def close(self) -> None:
        """Release any underlying connections."""
