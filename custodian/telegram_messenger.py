"""Messenger implementation on top of python-telegram-bot."""

from telegram import (
    Bot,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)
from telegram.error import TelegramError

from common.constants import TELEGRAM_FILE_URL_TEMPLATE
from common.logging_config import get_logger
from custodian import messages
from custodian.exceptions import TransportError
from custodian.messenger import Messenger, ResolvedLink
from custodian.types import DeletionIntent, ReplyKind

logger = get_logger(__name__)


class TelegramMessenger(Messenger):
    def __init__(self, bot: Bot, token: str):
        self.bot = bot
        self.token = token

    async def send_text(self, chat_id: int, text: str, remove_keyboard: bool = False) -> None:
        reply_markup = ReplyKeyboardRemove() if remove_keyboard else None
        await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=reply_markup)

    async def request_contact(self, chat_id: int, text: str, button_text: str) -> None:
        keyboard = ReplyKeyboardMarkup(
            [[KeyboardButton(button_text, request_contact=True)]],
            resize_keyboard=True,
            one_time_keyboard=True,
        )
        await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard)

    async def send_confirmation(
        self,
        chat_id: int,
        text: str,
        confirm: DeletionIntent,
        cancel: DeletionIntent,
    ) -> None:
        keyboard = InlineKeyboardMarkup([[
            InlineKeyboardButton(messages.CONFIRM_BUTTON, callback_data=confirm.encode()),
            InlineKeyboardButton(messages.CANCEL_BUTTON, callback_data=cancel.encode()),
        ]])
        await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard)

    async def send_file(self, chat_id: int, kind: ReplyKind, file_name: str, data: bytes) -> None:
        try:
            if kind is ReplyKind.PHOTO:
                await self.bot.send_photo(chat_id=chat_id, photo=data, filename=file_name)
            elif kind is ReplyKind.VIDEO:
                await self.bot.send_video(chat_id=chat_id, video=data, filename=file_name)
            elif kind is ReplyKind.AUDIO:
                await self.bot.send_audio(chat_id=chat_id, audio=data, filename=file_name)
            else:
                await self.bot.send_document(chat_id=chat_id, document=data, filename=file_name)
        except TelegramError as e:
            raise TransportError(f"Sending {file_name} ({len(data)} bytes) failed: {e}") from e

    async def answer_callback(self, callback_id: str) -> None:
        try:
            await self.bot.answer_callback_query(callback_query_id=callback_id)
        except TelegramError as e:
            logger.warning(f"Failed to answer callback {callback_id}: {e}")

    async def resolve_file_link(self, file_ref: str) -> ResolvedLink:
        try:
            tg_file = await self.bot.get_file(file_ref)
        except TelegramError as e:
            raise TransportError(f"getFile failed: {e}") from e

        if not tg_file.file_path:
            raise TransportError(f"getFile returned no path for {file_ref}")

        url = tg_file.file_path
        if not url.startswith("http"):
            url = TELEGRAM_FILE_URL_TEMPLATE.format(token=self.token, file_path=url)
        return ResolvedLink(url=url, size=tg_file.file_size)

    def fallback_file_url(self, file_ref: str) -> str:
        return TELEGRAM_FILE_URL_TEMPLATE.format(token=self.token, file_path=file_ref)
