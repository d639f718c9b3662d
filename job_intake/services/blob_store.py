"""
GridFS backed blob store for resume files.

Blobs are write-once: ``store`` streams the bytes into a GridFS upload and the
file document, which is what makes the id resolvable, is only written when
the upload is closed. A failed upload is aborted so no partial blob remains.
"""
import asyncio
from collections.abc import AsyncIterator

from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorGridFSBucket, AsyncIOMotorGridIn

from job_intake.core.exceptions import (
    BlobNotFoundError,
    JobIntakeException,
    StorageReadError,
    StorageWriteError,
)
from job_intake.log.logging import logger


class BlobStream:
    """
    One-pass async iterator over the bytes of a stored blob.

    Chunks are read from GridFS one at a time as the consumer asks for them,
    so a slow consumer never causes buffering beyond a single chunk. The
    underlying download cursor is released when iteration ends, fails or is
    cancelled, and by an explicit ``aclose()``.
    """

    def __init__(self, blob_id: str, grid_out):
        self.blob_id = blob_id
        self._grid_out = grid_out
        self._consumed = False
        self._closed = False

    @property
    def length(self) -> int:
        return self._grid_out.length

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed or self._closed:
            raise StorageReadError("Blob stream can only be read once")
        self._consumed = True
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            while True:
                try:
                    chunk = await self._grid_out.readchunk()
                except Exception as e:
                    logger.error(
                        "Failed to read blob chunk",
                        blob_id=self.blob_id,
                        error=str(e),
                        event_type="blob_read_error",
                    )
                    raise StorageReadError() from e
                if not chunk:
                    break
                yield chunk
        finally:
            await self.aclose()

    async def read_all(self) -> bytes:
        """Read the whole blob. Only meant for small blobs and tests."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._grid_out.close()


class GridFSBlobStore:
    """
    Content store for resume files backed by a GridFS bucket.

    Constructed once at startup and injected into the services that need it.
    """

    def __init__(self, bucket: AsyncIOMotorGridFSBucket):
        self._bucket = bucket

    async def store(
        self,
        chunks: AsyncIterator[bytes],
        filename: str,
        content_type: str,
        size_hint: int | None = None,
    ) -> str:
        """
        Consume ``chunks`` to completion and persist them as a new blob.

        Args:
            chunks: Async iterator of byte chunks.
            filename: Filename recorded with the blob.
            content_type: MIME type recorded in the blob metadata.
            size_hint: Optional expected size, recorded in the metadata.

        Returns:
            The new blob id, once the whole stream has been written.

        Raises:
            StorageWriteError: If the stream or the database fails mid-transfer.
                Errors raised by the chunk source that are already service
                errors (e.g. a size limit) are re-raised unchanged.
        """
        grid_in = None
        try:
            grid_in = self._bucket.open_upload_stream(
                filename,
                metadata={"content_type": content_type, "size_hint": size_hint},
            )
            async for chunk in chunks:
                if chunk:
                    await grid_in.write(chunk)
            await grid_in.close()
        except JobIntakeException:
            await self._abort(grid_in)
            raise
        except asyncio.CancelledError:
            await self._abort(grid_in)
            raise
        except Exception as e:
            logger.error(
                "Failed to store blob",
                filename=filename,
                error=str(e),
                event_type="blob_write_error",
            )
            await self._abort(grid_in)
            raise StorageWriteError() from e

        blob_id = str(grid_in._id)
        logger.debug("Blob stored", blob_id=blob_id, filename=filename)
        return blob_id

    async def open(self, blob_id: str) -> BlobStream:
        """
        Open a previously stored blob for streaming.

        Raises:
            BlobNotFoundError: If no blob exists under ``blob_id``.
            StorageReadError: If the database cannot be read.
        """
        try:
            object_id = ObjectId(blob_id)
        except (InvalidId, TypeError):
            raise BlobNotFoundError(blob_id)

        try:
            grid_out = await self._bucket.open_download_stream(object_id)
        except NoFile:
            raise BlobNotFoundError(blob_id)
        except Exception as e:
            logger.error(
                "Failed to open blob",
                blob_id=blob_id,
                error=str(e),
                event_type="blob_read_error",
            )
            raise StorageReadError() from e

        return BlobStream(blob_id, grid_out)

    async def _abort(self, grid_in: AsyncIOMotorGridIn | None) -> None:
        """Remove the chunks of an unfinished upload."""
        if grid_in is None:
            return
        try:
            await grid_in.abort()
        except Exception as e:
            logger.error(
                "Failed to abort blob upload",
                error=str(e),
                event_type="blob_abort_error",
            )
