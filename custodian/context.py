"""Explicit wiring of the services handed to every update handler."""

from dataclasses import dataclass

import httpx

from custodian.audit_sink import AuditRecorder, AuditSink
from custodian.config import Settings
from custodian.messenger import Messenger
from custodian.repositories import DualStoreRepository
from custodian.services import CommandService, DeletionService, IngestionService, SessionGate
from custodian.transport import FileDownloader


@dataclass
class BotContext:
    settings: Settings
    repository: DualStoreRepository
    messenger: Messenger
    gate: SessionGate
    ingestion: IngestionService
    deletion: DeletionService
    commands: CommandService


def build_context(
    settings: Settings,
    repository: DualStoreRepository,
    messenger: Messenger,
    http_client: httpx.AsyncClient,
    audit_sink: AuditSink,
) -> BotContext:
    audit = AuditRecorder(audit_sink)
    downloader = FileDownloader(http_client, settings.max_file_size_bytes)

    gate = SessionGate(repository, messenger, settings)
    ingestion = IngestionService(repository, messenger, downloader, audit)
    deletion = DeletionService(repository, messenger, audit)
    commands = CommandService(repository, messenger, ingestion, deletion)

    return BotContext(
        settings=settings,
        repository=repository,
        messenger=messenger,
        gate=gate,
        ingestion=ingestion,
        deletion=deletion,
        commands=commands,
    )
