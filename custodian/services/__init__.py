"""Service layer for bot behaviour."""

from custodian.services.session_gate import SessionGate, SessionState
from custodian.services.ingestion_service import IngestionService, UploadRequest, describe_upload
from custodian.services.deletion_service import DeletionService
from custodian.services.command_service import CommandService

__all__ = [
    "SessionGate",
    "SessionState",
    "IngestionService",
    "UploadRequest",
    "describe_upload",
    "DeletionService",
    "CommandService",
]
