"""Shared pytest fixtures for all tests."""

from typing import Callable, Dict, List, Optional

import httpx
import mongomock
import pytest
import pytest_asyncio

from custodian.audit_sink import AuditRecord, AuditSink
from custodian.config import Settings
from custodian.context import BotContext, build_context
from custodian.database import init_database
from custodian.exceptions import TransportError
from custodian.messenger import Messenger, ResolvedLink
from custodian.repositories import DualStoreRepository, FileRepository, User, UserRepository
from custodian.types import CallbackEvent, DeletionIntent, IncomingMessage, MediaRef, ReplyKind, Sender


class RecordingMessenger(Messenger):
    """
    Messenger fake that records every outbound call.

    File links are served from self.links; unknown references fail
    resolution, which sends ingestion down the fallback path.
    """

    def __init__(self):
        self.sent: List[tuple] = []
        self.answered: List[str] = []
        self.links: Dict[str, ResolvedLink] = {}

    async def send_text(self, chat_id: int, text: str, remove_keyboard: bool = False) -> None:
        self.sent.append(("text", chat_id, text, remove_keyboard))

    async def request_contact(self, chat_id: int, text: str, button_text: str) -> None:
        self.sent.append(("contact_request", chat_id, text, button_text))

    async def send_confirmation(self, chat_id: int, text: str, confirm: DeletionIntent, cancel: DeletionIntent) -> None:
        self.sent.append(("confirmation", chat_id, text, confirm.encode(), cancel.encode()))

    async def send_file(self, chat_id: int, kind: ReplyKind, file_name: str, data: bytes) -> None:
        self.sent.append(("file", chat_id, kind, file_name, data))

    async def answer_callback(self, callback_id: str) -> None:
        self.answered.append(callback_id)

    async def resolve_file_link(self, file_ref: str) -> ResolvedLink:
        if file_ref not in self.links:
            raise TransportError(f"unknown file reference {file_ref}")
        return self.links[file_ref]

    def fallback_file_url(self, file_ref: str) -> str:
        return f"https://files.test/fallback/{file_ref}"

    @property
    def texts(self) -> List[str]:
        return [entry[2] for entry in self.sent if entry[0] == "text"]

    def of_kind(self, kind: str) -> List[tuple]:
        return [entry for entry in self.sent if entry[0] == kind]


class RecordingAuditSink(AuditSink):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: List[AuditRecord] = []
        self.deleted_files: List[int] = []
        self.deleted_owners: List[int] = []

    def log_file_upload(self, record: AuditRecord) -> None:
        if self.fail:
            raise RuntimeError("sheet unavailable")
        self.uploads.append(record)

    def mark_file_deleted(self, file_id: int) -> None:
        if self.fail:
            raise RuntimeError("sheet unavailable")
        self.deleted_files.append(file_id)

    def mark_owner_files_deleted(self, user_id: int) -> None:
        if self.fail:
            raise RuntimeError("sheet unavailable")
        self.deleted_owners.append(user_id)


class FileServer:
    """Routes for httpx.MockTransport keyed by URL."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[str] = []

    def serve(self, url: str, content: Optional[bytes] = None, **response_kwargs) -> None:
        self.routes[url] = lambda request: httpx.Response(200, content=content, **response_kwargs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.routes:
            return self.routes[url](request)
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        bot_token="123456:TEST-TOKEN",
        mongo_uri="mongodb://localhost:27017",
        sqlite_path=str(tmp_path / "db" / "test.db"),
        admins={"alice": True, "mallory": False},
    )


@pytest.fixture
def user_repo(settings) -> UserRepository:
    init_database(settings.sqlite_path)
    return UserRepository(settings.sqlite_path)


@pytest.fixture
def mongo_db():
    client = mongomock.MongoClient()
    yield client["test_bot"]
    client.close()


@pytest.fixture
def file_repo(mongo_db) -> FileRepository:
    repo = FileRepository(mongo_db, chunk_size=1024)
    repo.ensure_indexes()
    return repo


@pytest.fixture
def repository(user_repo, file_repo) -> DualStoreRepository:
    return DualStoreRepository(user_repo, file_repo)


@pytest.fixture
def messenger() -> RecordingMessenger:
    return RecordingMessenger()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def file_server() -> FileServer:
    return FileServer()


@pytest_asyncio.fixture
async def http_client(file_server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(file_server.handler))
    yield client
    await client.aclose()


@pytest.fixture
def ctx(settings, repository, messenger, http_client, audit_sink) -> BotContext:
    return build_context(settings, repository, messenger, http_client, audit_sink)


@pytest.fixture
def active_user(user_repo) -> User:
    user = User(id=100, username="bob", first_name="Bob", last_name="Builder", phone="+100", is_admin=False)
    user_repo.save_user(user)
    return user


@pytest.fixture
def admin_user(user_repo) -> User:
    user = User(id=200, username="alice", first_name="Alice", last_name="Admin", phone="+200", is_admin=True)
    user_repo.save_user(user)
    return user


def make_message(
    user_id: int = 100,
    username: str = "bob",
    text: Optional[str] = None,
    contact_phone: Optional[str] = None,
    media: Optional[MediaRef] = None,
    caption: Optional[str] = None,
    first_name: str = "Bob",
) -> IncomingMessage:
    return IncomingMessage(
        sender=Sender(user_id=user_id, username=username, first_name=first_name, last_name=""),
        chat_id=user_id,
        text=text,
        caption=caption,
        contact_phone=contact_phone,
        media=media,
    )


def make_callback(data: str, user_id: int = 100, username: str = "bob", callback_id: str = "cb-1") -> CallbackEvent:
    return CallbackEvent(
        callback_id=callback_id,
        sender=Sender(user_id=user_id, username=username),
        chat_id=user_id,
        data=data,
    )
