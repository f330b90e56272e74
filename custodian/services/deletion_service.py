"""Two-step deletion: confirmation prompt, then the user's answer."""

from common.logging_config import get_logger
from custodian import messages
from custodian.audit_sink import AuditRecorder
from custodian.exceptions import MalformedInputError, NotFoundError, PermissionDeniedError, StorageError
from custodian.messenger import Messenger
from custodian.repositories import DualStoreRepository, StoredFile, User
from custodian.types import AllFiles, CallbackEvent, DeletionChoice, DeletionIntent, SingleFile

logger = get_logger(__name__)


def ensure_can_access(user: User, stored: StoredFile) -> None:
    """
    Raises:
        PermissionDeniedError: If the user is neither the owner nor an administrator
    """
    if not user.is_admin and stored.user_id != user.id:
        raise PermissionDeniedError(f"User {user.id} may not access file {stored.id}")


class DeletionService:
    def __init__(self, repository: DualStoreRepository, messenger: Messenger, audit: AuditRecorder):
        self.repository = repository
        self.messenger = messenger
        self.audit = audit

    async def request_single(self, chat_id: int, user: User, file_id: int) -> None:
        """
        Ask for confirmation before deleting one file.

        Raises:
            NotFoundError: If the file does not exist
            PermissionDeniedError: If the user may not delete it
            StorageError: If the lookup fails
        """
        stored = await self.repository.get_file(file_id, with_data=False)
        if stored is None:
            raise NotFoundError(f"File {file_id} not found")
        ensure_can_access(user, stored)

        confirm, cancel = DeletionIntent.pair_for(SingleFile(file_id))
        await self.messenger.send_confirmation(
            chat_id,
            messages.DELETE_CONFIRM_SINGLE.format(file_name=stored.file_name),
            confirm,
            cancel,
        )
        logger.info(f"Deletion requested for file {file_id} [user_id={user.id}]")

    async def request_all(self, chat_id: int, user: User) -> None:
        confirm, cancel = DeletionIntent.pair_for(AllFiles())
        await self.messenger.send_confirmation(chat_id, messages.DELETE_CONFIRM_ALL, confirm, cancel)
        logger.info(f"Deletion of all files requested [user_id={user.id}]")

    async def resolve(self, callback: CallbackEvent) -> None:
        """
        Carry out the answer to a confirmation prompt.

        The callback is acknowledged exactly once, whatever happens.
        """
        logger.info(f"[CALLBACK] {callback.sender.username}: {callback.data}")
        try:
            try:
                intent = DeletionIntent.decode(callback.data)
            except MalformedInputError as e:
                logger.warning(f"Ignoring callback [user_id={callback.sender.user_id}]: {e}")
                await self.messenger.send_text(callback.chat_id, messages.UNKNOWN_ACTION)
                return

            if intent.choice is DeletionChoice.CANCEL:
                await self._cancel(callback, intent)
            else:
                await self._execute(callback, intent)
        finally:
            await self.messenger.answer_callback(callback.callback_id)

    async def _cancel(self, callback: CallbackEvent, intent: DeletionIntent) -> None:
        if isinstance(intent.target, AllFiles):
            text = messages.DELETE_CANCELLED_ALL
        else:
            text = messages.DELETE_CANCELLED_SINGLE
        await self.messenger.send_text(callback.chat_id, text)

    async def _execute(self, callback: CallbackEvent, intent: DeletionIntent) -> None:
        owner_id = callback.sender.user_id

        if isinstance(intent.target, AllFiles):
            try:
                deleted = await self.repository.delete_files_by_owner(owner_id)
            except StorageError as e:
                logger.error(f"Error deleting files [user_id={owner_id}]: {e}")
                await self.messenger.send_text(callback.chat_id, messages.DELETE_ERROR_ALL)
                return
            logger.info(f"Deleted {len(deleted)} file(s) on confirmation [user_id={owner_id}]")
            await self.messenger.send_text(callback.chat_id, messages.DELETE_SUCCESS_ALL)
            if deleted:
                await self.audit.owner_files_deleted(owner_id)
            return

        file_id = intent.target.file_id
        try:
            removed = await self.repository.delete_file(file_id)
        except StorageError as e:
            logger.error(f"Error deleting file {file_id} [user_id={owner_id}]: {e}")
            await self.messenger.send_text(callback.chat_id, messages.DELETE_ERROR_SINGLE)
            return
        logger.info(f"File {file_id} deleted on confirmation [user_id={owner_id}] [removed={removed}]")
        await self.messenger.send_text(callback.chat_id, messages.DELETE_SUCCESS_SINGLE)
        if removed:
            await self.audit.file_deleted(file_id)
