"""Telegram update handlers: translate updates and hand them to the services."""

from typing import Optional

from telegram import Message, Update
from telegram.ext import Application, CallbackQueryHandler, ContextTypes, MessageHandler, filters

from common.logging_config import get_logger
from custodian.context import BotContext
from custodian.types import CallbackEvent, IncomingMessage, MediaKind, MediaRef, Sender

logger = get_logger(__name__)


def sender_from_user(user) -> Sender:
    return Sender(
        user_id=user.id,
        username=user.username or "",
        first_name=user.first_name or "",
        last_name=user.last_name or "",
    )


def media_from_message(message: Message) -> Optional[MediaRef]:
    """
    Pick the media payload of a message, if any.

    Photos arrive in several sizes; the largest one is used.
    """
    if message.document is not None:
        doc = message.document
        return MediaRef(MediaKind.DOCUMENT, doc.file_id, doc.file_name, doc.mime_type, doc.file_size)

    if message.photo:
        photo = message.photo[-1]
        return MediaRef(MediaKind.PHOTO, photo.file_id, size=photo.file_size)

    if message.voice is not None:
        voice = message.voice
        return MediaRef(MediaKind.VOICE, voice.file_id, mime_type=voice.mime_type, size=voice.file_size)

    if message.audio is not None:
        audio = message.audio
        return MediaRef(MediaKind.AUDIO, audio.file_id, audio.file_name, audio.mime_type, audio.file_size)

    if message.video is not None:
        video = message.video
        return MediaRef(MediaKind.VIDEO, video.file_id, video.file_name, video.mime_type, video.file_size)

    if message.video_note is not None:
        note = message.video_note
        return MediaRef(MediaKind.VIDEO_NOTE, note.file_id, size=note.file_size)

    return None


def incoming_from_message(message: Message) -> IncomingMessage:
    return IncomingMessage(
        sender=sender_from_user(message.from_user),
        chat_id=message.chat_id,
        text=message.text,
        caption=message.caption,
        contact_phone=message.contact.phone_number if message.contact else None,
        media=media_from_message(message),
    )


class TelegramRoutes:
    def __init__(self, ctx: BotContext):
        self.ctx = ctx

    def register(self, application: Application) -> None:
        application.add_handler(CallbackQueryHandler(self.on_callback))
        application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, self.on_message))
        application.add_error_handler(self.on_error)

    async def on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if message is None or message.from_user is None:
            return

        incoming = incoming_from_message(message)
        user = await self.ctx.gate.admit(incoming)
        if user is None:
            return
        await self.ctx.commands.dispatch(incoming, user)

    async def on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return

        chat_id = query.message.chat.id if query.message is not None else query.from_user.id
        await self.ctx.deletion.resolve(CallbackEvent(
            callback_id=query.id,
            sender=sender_from_user(query.from_user),
            chat_id=chat_id,
            data=query.data or "",
        ))

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = getattr(update, "effective_user", None)
        user_id = user.id if user is not None else "unknown"
        logger.error(f"Unhandled error while processing update [user_id={user_id}]: {context.error}",
                     exc_info=context.error)
