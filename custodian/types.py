"""Platform-independent event and intent types."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from common.constants import MAX_FILE_ID
from custodian.exceptions import MalformedInputError


class MediaKind(str, Enum):
    DOCUMENT = "document"
    PHOTO = "photo"
    VOICE = "voice"
    AUDIO = "audio"
    VIDEO = "video"
    VIDEO_NOTE = "video_note"


class ReplyKind(str, Enum):
    """How stored bytes are sent back to the chat."""
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"

    @classmethod
    def for_file_type(cls, file_type: str) -> "ReplyKind":
        file_type = (file_type or "").lower()
        if file_type.startswith("image/"):
            return cls.PHOTO
        if file_type.startswith("video/"):
            return cls.VIDEO
        if file_type.startswith("audio/"):
            return cls.AUDIO
        return cls.DOCUMENT


@dataclass(frozen=True)
class Sender:
    user_id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class MediaRef:
    """Reference to a file that still lives on the platform."""
    kind: MediaKind
    file_ref: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


@dataclass(frozen=True)
class IncomingMessage:
    sender: Sender
    chat_id: int
    text: Optional[str] = None
    caption: Optional[str] = None
    contact_phone: Optional[str] = None
    media: Optional[MediaRef] = None

    @property
    def is_command(self) -> bool:
        return bool(self.text) and self.text.startswith("/") and len(self.text) > 1

    def command(self) -> Tuple[str, str]:
        """
        Split a command message into (name, arguments).

        "/show@my_bot 12" gives ("show", "12"). Non-command messages give ("", "").
        """
        if not self.is_command:
            return "", ""
        head, _, args = self.text[1:].partition(" ")
        name = head.split("@", 1)[0].lower()
        return name, args.strip()


@dataclass(frozen=True)
class CallbackEvent:
    callback_id: str
    sender: Sender
    chat_id: int
    data: str


class DeletionChoice(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


@dataclass(frozen=True)
class SingleFile:
    file_id: int


@dataclass(frozen=True)
class AllFiles:
    pass


DeletionTarget = Union[SingleFile, AllFiles]

_TOKEN_PATTERN = re.compile(r"(confirm|cancel)_delete_(all|\d+)")


@dataclass(frozen=True)
class DeletionIntent:
    """
    A Confirm/Cancel answer about one file or about all of the requester's files.

    Wire format: confirm_delete_<id>, confirm_delete_all, cancel_delete_<id>,
    cancel_delete_all.
    """
    choice: DeletionChoice
    target: DeletionTarget

    def encode(self) -> str:
        if isinstance(self.target, SingleFile):
            suffix = str(self.target.file_id)
        else:
            suffix = "all"
        return f"{self.choice.value}_delete_{suffix}"

    @classmethod
    def decode(cls, data: str) -> "DeletionIntent":
        match = _TOKEN_PATTERN.fullmatch(data or "")
        if match is None:
            raise MalformedInputError(f"Unrecognized callback data: {data!r}")

        choice = DeletionChoice(match.group(1))
        if match.group(2) == "all":
            return cls(choice, AllFiles())

        file_id = int(match.group(2))
        if not 1 <= file_id <= MAX_FILE_ID:
            raise MalformedInputError(f"File ID out of range in callback data: {data!r}")
        return cls(choice, SingleFile(file_id))

    @classmethod
    def pair_for(cls, target: DeletionTarget) -> Tuple["DeletionIntent", "DeletionIntent"]:
        """Return the (confirm, cancel) intents offered for a target."""
        return cls(DeletionChoice.CONFIRM, target), cls(DeletionChoice.CANCEL, target)
