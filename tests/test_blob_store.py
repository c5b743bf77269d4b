"""Blob store tests — chunked async writes, the size cap, path safety."""

import io

import pytest
from fastapi import UploadFile

from akcent.storage.blob import (
    BlobNotFoundError,
    BlobStore,
    BlobTooLargeError,
    safe_extension,
)


@pytest.fixture()
def store(tmp_path):
    return BlobStore(tmp_path / "blobs", max_bytes=3 * 1024 * 1024)


def _upload(data: bytes, filename: str = "loader.exe") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


@pytest.mark.asyncio
async def test_store_streams_upload_in_chunks(store):
    data = b"x" * (2 * 1024 * 1024 + 17)
    blob = await store.store(_upload(data), "loader.exe")

    assert blob.size == len(data)
    assert blob.name.endswith(".exe")
    assert len(blob.name) == 32 + len(".exe")
    assert await store.exists(blob.name)
    assert await store.retrieve(blob.name) == data


@pytest.mark.asyncio
async def test_store_bytes(store):
    blob = await store.store(b"hello", "notes.txt")
    assert await store.retrieve(blob.name) == b"hello"


@pytest.mark.asyncio
async def test_oversized_upload_leaves_nothing_behind(store):
    with pytest.raises(BlobTooLargeError):
        await store.store(_upload(b"y" * (4 * 1024 * 1024)), "big.bin")
    assert list(store.root.iterdir()) == []

    with pytest.raises(BlobTooLargeError):
        await store.store(b"y" * (4 * 1024 * 1024), "big.bin")
    assert list(store.root.iterdir()) == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    blob = await store.store(b"data", "a.bin")
    await store.delete(blob.name)
    await store.delete(blob.name)
    assert not await store.exists(blob.name)
    with pytest.raises(BlobNotFoundError):
        await store.retrieve(blob.name)


@pytest.mark.asyncio
async def test_names_outside_root_never_resolve(store):
    store.ensure_root()
    (store.root.parent / "secret.txt").write_bytes(b"nope")

    assert not await store.exists("../secret.txt")
    with pytest.raises(BlobNotFoundError):
        store.resolve("../secret.txt")
    await store.delete("../secret.txt")
    assert (store.root.parent / "secret.txt").exists()


@pytest.mark.parametrize(
    "original, ext",
    [("report.final.PDF", ".PDF"), ("../../x.sh;rm", ".shrm"), ("noext", ""), ("", "")],
)
def test_safe_extension(original, ext):
    assert safe_extension(original) == ext
