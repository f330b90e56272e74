"""Outbound messaging interface used by the services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from custodian.types import DeletionIntent, ReplyKind


@dataclass(frozen=True)
class ResolvedLink:
    """Direct download link for a platform file plus the platform's size hint."""
    url: str
    size: Optional[int] = None


class Messenger(ABC):
    """
    Everything the services need from the chat platform.

    Implementations deliver replies and resolve file references; services
    never talk to the platform SDK directly.
    """

    @abstractmethod
    async def send_text(self, chat_id: int, text: str, remove_keyboard: bool = False) -> None:
        ...

    @abstractmethod
    async def request_contact(self, chat_id: int, text: str, button_text: str) -> None:
        """Send text with a one-button keyboard that shares the user's contact."""

    @abstractmethod
    async def send_confirmation(
        self,
        chat_id: int,
        text: str,
        confirm: DeletionIntent,
        cancel: DeletionIntent,
    ) -> None:
        """Send text with an inline Confirm / Cancel keyboard."""

    @abstractmethod
    async def send_file(self, chat_id: int, kind: ReplyKind, file_name: str, data: bytes) -> None:
        """
        Raises:
            TransportError: If the platform rejects the upload (e.g. above its size limit)
        """

    @abstractmethod
    async def answer_callback(self, callback_id: str) -> None:
        """Close the pending indicator of an interactive choice."""

    @abstractmethod
    async def resolve_file_link(self, file_ref: str) -> ResolvedLink:
        """
        Turn a platform file reference into a direct download link.

        Raises:
            TransportError: If the platform cannot resolve the reference
        """

    @abstractmethod
    def fallback_file_url(self, file_ref: str) -> str:
        """Build a download URL from the platform's URL template without an API call."""
