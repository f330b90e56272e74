"""File repository for MongoDB operations."""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from common.constants import CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from custodian.exceptions import DuplicateFileError, StorageError

logger = get_logger(__name__)

FILES_COLLECTION = "files"
CHUNKS_COLLECTION = "file_chunks"
DEDUP_INDEX_NAME = "dedup_key"
MAX_ID_ALLOCATION_ATTEMPTS = 5

METADATA_PROJECTION = {
    "_id": 1,
    "user_id": 1,
    "file_name": 1,
    "file_type": 1,
    "size": 1,
    "created_at": 1,
}


@dataclass
class StoredFile:
    id: int
    user_id: int
    file_name: str
    file_type: str
    size: int
    created_at: datetime
    data: Optional[bytes] = None


def _document_to_file(document: dict, data: Optional[bytes] = None) -> StoredFile:
    return StoredFile(
        id=document["_id"],
        user_id=document["user_id"],
        file_name=document["file_name"],
        file_type=document["file_type"],
        size=document.get("size", 0),
        created_at=document["created_at"],
        data=data,
    )


def split_into_chunks(data: bytes, chunk_size: int = CHUNK_SIZE_BYTES) -> Iterator[Tuple[int, bytes]]:
    """
    Yield (chunk_index, chunk_bytes) pairs covering the payload.

    An empty payload yields nothing.
    """
    view = memoryview(data)
    for chunk_index, offset in enumerate(range(0, len(data), chunk_size)):
        yield chunk_index, bytes(view[offset:offset + chunk_size])


class FileRepository:
    def __init__(self, database: Database, chunk_size: int = CHUNK_SIZE_BYTES):
        self.files = database[FILES_COLLECTION]
        self.chunks = database[CHUNKS_COLLECTION]
        self.chunk_size = chunk_size

    def ensure_indexes(self) -> None:
        self.files.create_index(
            [("user_id", ASCENDING), ("file_name", ASCENDING), ("file_type", ASCENDING)],
            unique=True,
            name=DEDUP_INDEX_NAME,
        )
        self.chunks.create_index(
            [("file_id", ASCENDING), ("chunk_index", ASCENDING)],
            unique=True,
            name="file_chunk_order",
        )
        logger.info("File store indexes ensured")

    def find_duplicate(self, user_id: int, file_name: str, file_type: str) -> Optional[StoredFile]:
        document = self.files.find_one(
            {"user_id": user_id, "file_name": file_name, "file_type": file_type},
            METADATA_PROJECTION,
        )
        if document is None:
            return None
        return _document_to_file(document)

    def next_file_id(self) -> int:
        last = self.files.find_one({}, {"_id": 1}, sort=[("_id", DESCENDING)])
        if last is None:
            return 1
        return int(last["_id"]) + 1

    def save_file(
        self,
        user_id: int,
        file_name: str,
        file_type: str,
        data: bytes,
        created_at: datetime,
    ) -> StoredFile:
        """
        Insert a file and its payload chunks.

        The id is the current maximum id plus one. A concurrent insert that
        takes the same id makes the unique _id reject ours and the
        allocation is retried; a concurrent insert of the same dedup key is
        reported as a duplicate.

        Raises:
            DuplicateFileError: If (user_id, file_name, file_type) already exists
            StorageError: If no free id could be claimed
        """
        if self.find_duplicate(user_id, file_name, file_type) is not None:
            logger.info(f"Duplicate upload rejected: {file_name} ({file_type}) [user_id={user_id}]")
            raise DuplicateFileError(f"File {file_name} ({file_type}) already exists")

        file_id = None
        for attempt in range(MAX_ID_ALLOCATION_ATTEMPTS):
            candidate = self.next_file_id()
            try:
                self.files.insert_one({
                    "_id": candidate,
                    "user_id": user_id,
                    "file_name": file_name,
                    "file_type": file_type,
                    "size": len(data),
                    "created_at": created_at,
                })
                file_id = candidate
                break
            except DuplicateKeyError:
                if self.find_duplicate(user_id, file_name, file_type) is not None:
                    raise DuplicateFileError(f"File {file_name} ({file_type}) already exists")
                logger.warning(f"File id {candidate} taken concurrently, retrying (attempt {attempt + 1})")

        if file_id is None:
            raise StorageError(f"Could not allocate a file id after {MAX_ID_ALLOCATION_ATTEMPTS} attempts")

        try:
            # ids can be reused, so chunks orphaned by an earlier delete go first
            self.chunks.delete_many({"file_id": file_id})
            self._write_chunks(file_id, data)
        except Exception as e:
            logger.error(f"Failed to write payload for file {file_id}, removing it: {e}", exc_info=True)
            self.chunks.delete_many({"file_id": file_id})
            self.files.delete_one({"_id": file_id})
            raise

        logger.info(f"File saved: {file_name} [file_id={file_id}] [user_id={user_id}] ({len(data)} bytes)")
        return StoredFile(
            id=file_id,
            user_id=user_id,
            file_name=file_name,
            file_type=file_type,
            size=len(data),
            created_at=created_at,
            data=data,
        )

    def _write_chunks(self, file_id: int, data: bytes) -> None:
        documents = [
            {
                "file_id": file_id,
                "chunk_index": chunk_index,
                "data": chunk,
                "checksum": hashlib.sha256(chunk).hexdigest(),
            }
            for chunk_index, chunk in split_into_chunks(data, self.chunk_size)
        ]
        if documents:
            self.chunks.insert_many(documents, ordered=True)

    def _read_payload(self, file_id: int) -> bytes:
        cursor = self.chunks.find({"file_id": file_id}).sort("chunk_index", ASCENDING)
        return b"".join(bytes(chunk["data"]) for chunk in cursor)

    def get_file(self, file_id: int, with_data: bool = True) -> Optional[StoredFile]:
        document = self.files.find_one({"_id": file_id}, METADATA_PROJECTION)
        if document is None:
            logger.debug(f"File not found [file_id={file_id}]")
            return None

        data = None
        if with_data:
            data = self._read_payload(file_id)
            if len(data) != document.get("size", len(data)):
                logger.warning(
                    f"Payload size mismatch for file {file_id}: "
                    f"expected {document.get('size')} bytes, read {len(data)}"
                )
        return _document_to_file(document, data)

    def get_files_by_owner(self, user_id: int) -> List[StoredFile]:
        cursor = self.files.find({"user_id": user_id}, METADATA_PROJECTION).sort("_id", ASCENDING)
        return [_document_to_file(document) for document in cursor]

    def get_all_files(self) -> List[StoredFile]:
        cursor = self.files.find({}, METADATA_PROJECTION).sort("_id", ASCENDING)
        return [_document_to_file(document) for document in cursor]

    def _drop_chunks(self, file_ids: List[int]) -> None:
        """
        Remove payload chunks of files whose metadata is already gone.

        A failure leaves orphan chunks that no read path can reach, so it is
        logged and not raised.
        """
        try:
            self.chunks.delete_many({"file_id": {"$in": file_ids}})
        except PyMongoError as e:
            logger.error(f"Failed to remove payload chunks of files {file_ids}, leaving orphans: {e}")

    def delete_file(self, file_id: int) -> bool:
        """
        Delete one file. The metadata row goes first; the file counts as
        deleted once it is gone.
        """
        result = self.files.delete_one({"_id": file_id})
        deleted = result.deleted_count > 0
        if deleted:
            self._drop_chunks([file_id])
        logger.info(f"Delete file {file_id}: {'removed' if deleted else 'nothing to remove'}")
        return deleted

    def delete_files_by_owner(self, user_id: int) -> List[int]:
        file_ids = [document["_id"] for document in self.files.find({"user_id": user_id}, {"_id": 1})]
        if not file_ids:
            return []

        self.files.delete_many({"_id": {"$in": file_ids}})
        self._drop_chunks(file_ids)
        logger.info(f"Deleted {len(file_ids)} file(s) [user_id={user_id}]")
        return file_ids
