"""Repository layer for data access."""

from custodian.repositories.user_repository import User, UserRepository
from custodian.repositories.file_repository import FileRepository, StoredFile
from custodian.repositories.dual_store import DualStoreRepository

__all__ = [
    "User",
    "UserRepository",
    "FileRepository",
    "StoredFile",
    "DualStoreRepository",
]
