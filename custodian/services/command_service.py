"""Routes an admitted message to upload, command or status handling."""

from common.logging_config import get_logger
from custodian import messages
from common.constants import MAX_FILE_ID
from custodian.exceptions import (
    MalformedInputError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TransportError,
)
from custodian.messenger import Messenger
from custodian.repositories import DualStoreRepository, User
from custodian.services.deletion_service import DeletionService, ensure_can_access
from custodian.services.ingestion_service import IngestionService
from custodian.types import IncomingMessage, ReplyKind

logger = get_logger(__name__)


def parse_file_id(args: str) -> int:
    """
    Parse the file id argument of /show and /delete.

    Raises:
        MalformedInputError: If the first argument is not an integer in 1..MAX_FILE_ID
    """
    token = args.split()[0] if args.split() else ""
    try:
        file_id = int(token)
    except ValueError:
        raise MalformedInputError(f"Invalid file ID: {args!r}")
    if not 1 <= file_id <= MAX_FILE_ID:
        raise MalformedInputError(f"File ID out of range: {file_id}")
    return file_id


class CommandService:
    def __init__(
        self,
        repository: DualStoreRepository,
        messenger: Messenger,
        ingestion: IngestionService,
        deletion: DeletionService,
    ):
        self.repository = repository
        self.messenger = messenger
        self.ingestion = ingestion
        self.deletion = deletion
        self.handlers = {
            "start": self.cmd_help,
            "help": self.cmd_help,
            "list": self.cmd_list,
            "show": self.cmd_show,
            "delete": self.cmd_delete,
            "deleteall": self.cmd_delete_all,
        }

    async def dispatch(self, message: IncomingMessage, user: User) -> None:
        """
        Handle a message from an active user.
        """
        logger.info(f"[{message.sender.username}] {message.text or ''}")

        if message.media is not None:
            await self.ingestion.handle_upload(message)
            return

        if message.is_command:
            await self.handle_command(message, user)
            return

        await self.reply_status(message, user)

    async def handle_command(self, message: IncomingMessage, user: User) -> None:
        name, args = message.command()
        handler = self.handlers.get(name)
        if handler is None:
            logger.debug(f"Unknown command /{name} [user_id={user.id}]")
            await self.messenger.send_text(message.chat_id, messages.UNKNOWN_COMMAND)
            return
        await handler(message, user, args)

    async def reply_status(self, message: IncomingMessage, user: User) -> None:
        status = messages.STATUS_ADMIN if user.is_admin else messages.STATUS_REGULAR
        await self.messenger.send_text(
            message.chat_id,
            messages.STATUS_REPLY.format(first_name=user.first_name, status=status),
        )

    async def cmd_help(self, message: IncomingMessage, user: User, args: str) -> None:
        await self.messenger.send_text(
            message.chat_id,
            messages.HELP.format(max_size_mb=self.ingestion.max_size_mb),
        )

    async def cmd_list(self, message: IncomingMessage, user: User, args: str) -> None:
        try:
            if user.is_admin:
                files = await self.repository.get_all_files()
            else:
                files = await self.repository.get_files_by_owner(user.id)
        except StorageError as e:
            logger.error(f"Error getting file list [user_id={user.id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.LIST_ERROR)
            return

        if not files:
            await self.messenger.send_text(message.chat_id, messages.LIST_EMPTY)
            return

        lines = [
            messages.LIST_LINE.format(index=i, file_name=f.file_name, file_id=f.id)
            for i, f in enumerate(files, start=1)
        ]
        await self.messenger.send_text(message.chat_id, "\n".join(lines))

    async def _parse_id_argument(self, message: IncomingMessage, args: str, command: str):
        if not args:
            await self.messenger.send_text(message.chat_id, messages.FILE_ID_MISSING.format(command=command))
            return None
        try:
            return parse_file_id(args)
        except MalformedInputError:
            await self.messenger.send_text(message.chat_id, messages.FILE_ID_INVALID)
            return None

    async def cmd_show(self, message: IncomingMessage, user: User, args: str) -> None:
        file_id = await self._parse_id_argument(message, args, "show")
        if file_id is None:
            return

        await self.messenger.send_text(message.chat_id, messages.SHOW_WAIT)

        try:
            stored = await self.repository.get_file(file_id)
            if stored is None:
                raise NotFoundError(f"File {file_id} not found")
            ensure_can_access(user, stored)
        except NotFoundError:
            await self.messenger.send_text(message.chat_id, messages.FILE_NOT_FOUND)
            return
        except PermissionDeniedError as e:
            logger.warning(f"Access denied: {e}")
            await self.messenger.send_text(message.chat_id, messages.SHOW_PERMISSION_DENIED)
            return
        except StorageError as e:
            logger.error(f"Error getting file {file_id}: {e}")
            await self.messenger.send_text(message.chat_id, messages.FILE_FETCH_ERROR)
            return

        kind = ReplyKind.for_file_type(stored.file_type)
        logger.info(f"Sending file {stored.id} as {kind.value} [user_id={user.id}]")
        try:
            await self.messenger.send_file(message.chat_id, kind, stored.file_name, stored.data or b"")
        except TransportError as e:
            logger.error(f"Error sending file {stored.id} ({stored.size} bytes) [user_id={user.id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.FILE_SEND_ERROR)

    async def cmd_delete(self, message: IncomingMessage, user: User, args: str) -> None:
        file_id = await self._parse_id_argument(message, args, "delete")
        if file_id is None:
            return

        try:
            await self.deletion.request_single(message.chat_id, user, file_id)
        except NotFoundError:
            await self.messenger.send_text(message.chat_id, messages.FILE_NOT_FOUND)
        except PermissionDeniedError as e:
            logger.warning(f"Deletion denied: {e}")
            await self.messenger.send_text(message.chat_id, messages.DELETE_PERMISSION_DENIED)
        except StorageError as e:
            logger.error(f"Error getting file {file_id}: {e}")
            await self.messenger.send_text(message.chat_id, messages.FILE_FETCH_ERROR)

    async def cmd_delete_all(self, message: IncomingMessage, user: User, args: str) -> None:
        await self.deletion.request_all(message.chat_id, user)
