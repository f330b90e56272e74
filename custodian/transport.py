"""HTTP download of platform files with a size ceiling."""

from typing import Optional

import httpx

from common.logging_config import get_logger
from custodian.exceptions import MalformedResponseError, OversizeFileError, TransportError

logger = get_logger(__name__)


class FileDownloader:
    """Streams a remote file into memory, aborting once it passes the ceiling."""

    def __init__(self, client: httpx.AsyncClient, max_size: int):
        """
        Args:
            client: Shared async HTTP client
            max_size: Maximum accepted payload in bytes
        """
        self.client = client
        self.max_size = max_size

    def check_size(self, size: Optional[int]) -> None:
        """
        Raise OversizeFileError when a known size is above the ceiling.
        """
        if size is not None and size > self.max_size:
            raise OversizeFileError(size, self.max_size)

    async def download(self, url: str, reject_json: bool = False) -> bytes:
        """
        Download a file.

        Args:
            url: Direct file URL
            reject_json: Treat a JSON response as an error object rather than file content

        Returns:
            Payload bytes

        Raises:
            TransportError: On network failure or non-2xx status
            MalformedResponseError: If reject_json is set and the server answered with JSON
            OversizeFileError: If Content-Length or the streamed byte count exceeds the ceiling
        """
        try:
            async with self.client.stream("GET", url) as response:
                content_type = response.headers.get("content-type", "")
                if reject_json and "application/json" in content_type.lower():
                    body = await response.aread()
                    logger.warning(f"Received JSON instead of file content: {body[:200]!r}")
                    raise MalformedResponseError("File server returned an error object")

                if response.status_code >= 400:
                    raise TransportError(f"File server answered with HTTP {response.status_code}")

                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit():
                    self.check_size(int(content_length))

                buffer = bytearray()
                async for piece in response.aiter_bytes():
                    buffer.extend(piece)
                    if len(buffer) > self.max_size:
                        raise OversizeFileError(len(buffer), self.max_size)
        except httpx.HTTPError as e:
            raise TransportError(f"Download failed: {e}") from e

        logger.debug(f"Downloaded {len(buffer)} bytes")
        return bytes(buffer)
