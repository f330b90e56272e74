"""Onboarding gate: registration and phone capture before anything else."""

from enum import Enum
from typing import Optional

from common.logging_config import get_logger
from custodian import messages
from custodian.config import Settings
from custodian.exceptions import StorageError
from custodian.messenger import Messenger
from custodian.repositories import DualStoreRepository, User
from custodian.types import IncomingMessage

logger = get_logger(__name__)


class SessionState(str, Enum):
    UNREGISTERED = "unregistered"
    AWAITING_PHONE = "awaiting_phone"
    ACTIVE = "active"

    @classmethod
    def of(cls, user: Optional[User]) -> "SessionState":
        if user is None:
            return cls.UNREGISTERED
        if not user.has_phone:
            return cls.AWAITING_PHONE
        return cls.ACTIVE


class SessionGate:
    def __init__(self, repository: DualStoreRepository, messenger: Messenger, settings: Settings):
        self.repository = repository
        self.messenger = messenger
        self.settings = settings

    async def admit(self, message: IncomingMessage) -> Optional[User]:
        """
        Advance the sender's onboarding by one step.

        Returns:
            The stored user when the sender is active and the message may be
            processed, otherwise None (a prompt or confirmation was sent).
        """
        sender = message.sender
        try:
            user = await self.repository.get_user(sender.user_id)
        except StorageError as e:
            logger.error(f"Session lookup failed, re-prompting [user_id={sender.user_id}]: {e}")
            await self._request_phone(message.chat_id)
            return None

        state = SessionState.of(user)
        logger.debug(f"Session state {state.value} [user_id={sender.user_id}]")

        if state is SessionState.UNREGISTERED:
            await self._register(message)
            return None

        if state is SessionState.AWAITING_PHONE:
            if message.contact_phone:
                await self._capture_phone(message)
            else:
                await self._request_phone(message.chat_id)
            return None

        return user

    async def _register(self, message: IncomingMessage) -> None:
        sender = message.sender
        user = User(
            id=sender.user_id,
            username=sender.username,
            first_name=sender.first_name,
            last_name=sender.last_name,
            phone="",
            is_admin=self.settings.is_admin(sender.username),
        )
        try:
            await self.repository.save_user(user)
            logger.info(f"New user registered: {sender.username} [user_id={sender.user_id}] [admin={user.is_admin}]")
        except StorageError as e:
            logger.error(f"Failed to register user [user_id={sender.user_id}]: {e}")
        await self._request_phone(message.chat_id)

    async def _capture_phone(self, message: IncomingMessage) -> None:
        sender = message.sender
        try:
            await self.repository.set_user_phone(sender.user_id, message.contact_phone)
        except StorageError as e:
            logger.error(f"Failed to save phone [user_id={sender.user_id}]: {e}")
            await self._request_phone(message.chat_id)
            return

        await self.messenger.send_text(message.chat_id, messages.PHONE_SAVED, remove_keyboard=True)

    async def _request_phone(self, chat_id: int) -> None:
        await self.messenger.request_contact(chat_id, messages.PHONE_REQUEST, messages.PHONE_BUTTON)
