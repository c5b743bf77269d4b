"""Blob store — uploaded file contents on the local filesystem.

Learn: Stored names are 32 random hex characters plus the original
extension (reduced to [A-Za-z0-9.]), so user-supplied names never reach
the filesystem and collisions are negligible without any locking.
Reads and writes go through aiofiles in 1 MiB chunks, so a 500 MB upload
neither stalls the event loop nor sits in memory at once. A write that
fails part way (size cap, disk error, cancelled request) removes its
partial blob before the error propagates.
"""

import os
import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os
import structlog
from fastapi import Request, UploadFile

logger = structlog.get_logger()

_CHUNK_SIZE = 1024 * 1024
_EXT_UNSAFE = re.compile(r"[^A-Za-z0-9.]")


class BlobTooLargeError(Exception):
    """Raised when an upload exceeds the configured size limit."""


class BlobNotFoundError(Exception):
    """Raised when a stored name does not resolve to an existing blob."""


@dataclass
class StoredBlob:
    name: str
    size: int


def safe_extension(original_name: str) -> str:
    """'report.final.PDF' -> '.PDF'; '../../x.sh;rm' -> '.shrm'; 'noext' -> ''."""
    ext = os.path.splitext(os.path.basename(original_name or ""))[1]
    ext = _EXT_UNSAFE.sub("", ext)
    if ext in ("", "."):
        return ""
    return ext[:16]


class BlobStore:
    def __init__(self, root: Union[str, Path], max_bytes: int):
        self.root = Path(root).resolve()
        self.max_bytes = max_bytes

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def new_name(self, original_name: str) -> str:
        return secrets.token_hex(16) + safe_extension(original_name)

    def resolve(self, name: str) -> Path:
        """Map a stored name to its path, refusing anything outside the root."""
        path = (self.root / name).resolve()
        if path.parent != self.root:
            raise BlobNotFoundError(name)
        return path

    async def store(self, source: Union[UploadFile, bytes], original_name: str) -> StoredBlob:
        """Write a new blob. Raises BlobTooLargeError (nothing is left behind)."""
        if isinstance(source, (bytes, bytearray)) and len(source) > self.max_bytes:
            raise BlobTooLargeError(f"File exceeds {self.max_bytes} bytes")

        await aiofiles.os.makedirs(self.root, exist_ok=True)
        name = self.new_name(original_name)
        target = self.resolve(name)
        written = 0
        try:
            async with aiofiles.open(target, "wb") as out:
                if isinstance(source, (bytes, bytearray)):
                    await out.write(bytes(source))
                    written = len(source)
                else:
                    while True:
                        chunk = await source.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        written += len(chunk)
                        if written > self.max_bytes:
                            raise BlobTooLargeError(f"File exceeds {self.max_bytes} bytes")
                        await out.write(chunk)
        except BaseException:
            await self._remove(target)
            raise

        logger.info("blob.stored", name=name, size=written)
        return StoredBlob(name=name, size=written)

    async def retrieve(self, name: str) -> bytes:
        path = self.resolve(name)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            raise BlobNotFoundError(name)

    async def delete(self, name: str) -> None:
        """Remove a blob. Deleting a blob that is already gone is a no-op."""
        try:
            path = self.resolve(name)
        except BlobNotFoundError:
            return
        if await self._remove(path):
            logger.info("blob.deleted", name=name)

    async def exists(self, name: str) -> bool:
        try:
            path = self.resolve(name)
        except BlobNotFoundError:
            return False
        return await aiofiles.os.path.isfile(path)

    async def _remove(self, path: Path) -> bool:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        return True


def get_blob_store(request: Request) -> BlobStore:
    """FastAPI dependency — the app-wide store built in create_app()."""
    return request.app.state.blob_store
