"""File ingestion: download, size ceiling, dedup, persist, audit."""

from dataclasses import dataclass
from typing import Optional

from common.logging_config import get_logger
from custodian import messages
from custodian.audit_sink import AuditRecord, AuditRecorder
from custodian.exceptions import (
    DuplicateFileError,
    MalformedResponseError,
    OversizeFileError,
    StorageError,
    TransportError,
)
from custodian.messenger import Messenger
from custodian.repositories import DualStoreRepository, StoredFile
from custodian.transport import FileDownloader
from custodian.types import IncomingMessage, MediaKind, MediaRef

logger = get_logger(__name__)

DEFAULT_DOCUMENT_NAME = "document"
DEFAULT_DOCUMENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadRequest:
    file_ref: str
    file_name: str
    file_type: str
    size_hint: Optional[int] = None


def _caption_ends_with(caption: Optional[str], extension: str) -> bool:
    return bool(caption) and caption.strip().lower().endswith(extension)


def describe_upload(media: MediaRef, caption: Optional[str] = None) -> UploadRequest:
    """
    Derive the stored name and type for a media payload.

    Platform-provided names and types win; otherwise the media kind picks a
    default, and a caption ending in .heic (photos) or .mov (videos)
    overrides the default guess.
    """
    name = media.file_name
    file_type = media.mime_type

    if media.kind is MediaKind.DOCUMENT:
        name = name or DEFAULT_DOCUMENT_NAME
        file_type = file_type or DEFAULT_DOCUMENT_TYPE
    elif media.kind is MediaKind.PHOTO:
        if _caption_ends_with(caption, ".heic"):
            name, file_type = "photo.heic", "image/heic"
        else:
            name, file_type = "photo.jpg", "image/jpeg"
    elif media.kind is MediaKind.VOICE:
        name, file_type = "voice.ogg", "audio/ogg"
    elif media.kind is MediaKind.AUDIO:
        name = name or "audio.mp3"
        file_type = file_type or "audio/mpeg"
    elif media.kind is MediaKind.VIDEO:
        if not name and _caption_ends_with(caption, ".mov"):
            name, file_type = "video.mov", "video/quicktime"
        name = name or "video.mp4"
        file_type = file_type or "video/mp4"
    elif media.kind is MediaKind.VIDEO_NOTE:
        name, file_type = "video_note.mp4", "video/mp4"

    return UploadRequest(
        file_ref=media.file_ref,
        file_name=name,
        file_type=file_type,
        size_hint=media.size,
    )


class IngestionService:
    def __init__(
        self,
        repository: DualStoreRepository,
        messenger: Messenger,
        downloader: FileDownloader,
        audit: AuditRecorder,
    ):
        self.repository = repository
        self.messenger = messenger
        self.downloader = downloader
        self.audit = audit

    @property
    def max_size_mb(self) -> int:
        return self.downloader.max_size // (1024 * 1024)

    async def fetch(self, upload: UploadRequest, chat_id: Optional[int] = None) -> bytes:
        """
        Download the payload, first through the platform API, then through the URL template.

        When chat_id is given the user is told the upload started once the
        size hint passed the ceiling.
        """
        self.downloader.check_size(upload.size_hint)

        try:
            link = await self.messenger.resolve_file_link(upload.file_ref)
        except TransportError as e:
            logger.warning(f"Error getting file info, trying direct download: {e}")
            url = self.messenger.fallback_file_url(upload.file_ref)
            if chat_id is not None:
                await self.messenger.send_text(chat_id, messages.UPLOAD_IN_PROGRESS)
            return await self.downloader.download(url, reject_json=True)

        self.downloader.check_size(link.size)
        if chat_id is not None:
            await self.messenger.send_text(chat_id, messages.UPLOAD_IN_PROGRESS)
        return await self.downloader.download(link.url)

    async def ingest(self, owner_id: int, upload: UploadRequest, chat_id: Optional[int] = None) -> StoredFile:
        """
        Run the pipeline up to persistence.

        Raises:
            OversizeFileError, TransportError, MalformedResponseError,
            DuplicateFileError, StorageError
        """
        data = await self.fetch(upload, chat_id)
        self.downloader.check_size(len(data))
        return await self.repository.save_file(owner_id, upload.file_name, upload.file_type, data)

    async def handle_upload(self, message: IncomingMessage) -> Optional[StoredFile]:
        """
        Ingest the media of a message and reply with the outcome.

        Returns:
            The stored file, or None when the upload failed (the user was told why)
        """
        upload = describe_upload(message.media, message.caption)
        sender = message.sender
        logger.info(
            f"Upload started: {upload.file_name} ({upload.file_type}) "
            f"[user_id={sender.user_id}] [size_hint={upload.size_hint}]"
        )

        try:
            stored = await self.ingest(sender.user_id, upload, message.chat_id)
        except OversizeFileError as e:
            logger.info(f"Upload rejected as oversize [user_id={sender.user_id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.UPLOAD_TOO_LARGE.format(max_size_mb=self.max_size_mb))
            return None
        except MalformedResponseError as e:
            logger.error(f"Malformed file server response [user_id={sender.user_id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.UPLOAD_MALFORMED_RESPONSE)
            return None
        except TransportError as e:
            logger.error(f"Error downloading file [user_id={sender.user_id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.UPLOAD_TRANSPORT_ERROR)
            return None
        except DuplicateFileError:
            await self.messenger.send_text(message.chat_id, messages.UPLOAD_DUPLICATE)
            return None
        except StorageError as e:
            logger.error(f"Error saving file [user_id={sender.user_id}]: {e}")
            await self.messenger.send_text(message.chat_id, messages.UPLOAD_STORAGE_ERROR)
            return None

        await self.audit.file_uploaded(AuditRecord(
            file_id=stored.id,
            user_id=stored.user_id,
            username=sender.display_name,
            file_name=stored.file_name,
            file_type=stored.file_type,
            size=stored.size,
            created_at=stored.created_at,
        ))

        await self.messenger.send_text(
            message.chat_id,
            messages.UPLOAD_SUCCESS.format(
                file_id=stored.id,
                file_name=stored.file_name,
                file_type=stored.file_type,
            ),
        )
        return stored
