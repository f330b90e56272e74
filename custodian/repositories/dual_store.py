"""Async facade over the user store (SQLite) and the file store (MongoDB)."""

import asyncio
import sqlite3
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional, TypeVar

from pymongo.errors import PyMongoError

from common.logging_config import get_logger
from custodian.exceptions import StorageError
from custodian.repositories.file_repository import FileRepository, StoredFile
from custodian.repositories.user_repository import User, UserRepository

logger = get_logger(__name__)

T = TypeVar("T")


class DualStoreRepository:
    """
    Owns both stores and is the only component holding storage handles.

    Driver calls block, so each one runs in a worker thread. Driver errors
    are translated into StorageError; domain errors (DuplicateFileError)
    pass through unchanged. No operation touches both stores.
    """

    def __init__(self, users: UserRepository, files: FileRepository):
        self.users = users
        self.files = files

    async def _run(self, operation: str, func: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except (sqlite3.Error, PyMongoError) as e:
            logger.error(f"Storage failure during {operation}: {e}")
            raise StorageError(f"{operation} failed: {e}") from e

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._run("get_user", self.users.get_user, user_id)

    async def save_user(self, user: User) -> None:
        await self._run("save_user", self.users.save_user, user)

    async def set_user_phone(self, user_id: int, phone: str) -> bool:
        return await self._run("set_user_phone", self.users.set_user_phone, user_id, phone)

    async def reconcile_admins(self, admins: Mapping[str, bool]) -> int:
        return await self._run("reconcile_admins", self.users.reconcile_admins, dict(admins))

    async def get_all_users(self) -> List[User]:
        return await self._run("get_all_users", self.users.get_all_users)

    async def save_file(
        self,
        user_id: int,
        file_name: str,
        file_type: str,
        data: bytes,
        created_at: Optional[datetime] = None,
    ) -> StoredFile:
        if created_at is None:
            created_at = datetime.now(timezone.utc)
        return await self._run(
            "save_file", self.files.save_file, user_id, file_name, file_type, data, created_at
        )

    async def get_file(self, file_id: int, with_data: bool = True) -> Optional[StoredFile]:
        return await self._run("get_file", self.files.get_file, file_id, with_data)

    async def get_files_by_owner(self, user_id: int) -> List[StoredFile]:
        return await self._run("get_files_by_owner", self.files.get_files_by_owner, user_id)

    async def get_all_files(self) -> List[StoredFile]:
        return await self._run("get_all_files", self.files.get_all_files)

    async def delete_file(self, file_id: int) -> bool:
        return await self._run("delete_file", self.files.delete_file, file_id)

    async def delete_files_by_owner(self, user_id: int) -> List[int]:
        return await self._run("delete_files_by_owner", self.files.delete_files_by_owner, user_id)
