"""Files API — browsing, downloading, and admin file management.

Learn: Uploads are multipart forms. The metadata fields are validated
before a single byte is written, the blob is then streamed to disk, and
only after that is the row inserted. If the insert fails the blob is
removed again, so the database never points at a missing blob and disks
don't collect orphans.

Events after commit:
- file_uploaded + new_notification (users whose role may see the file)
- file_updated / file_deleted / file_version_created
- file_downloaded (staff and the downloader only)
- file_comment_created / file_comment_deleted (admins only)
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Request,
    UploadFile,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.auth.permissions import ADMIN_ONLY, STAFF_ROLES, has_permission
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    FILE_COMMENT_CREATED,
    FILE_COMMENT_DELETED,
    FILE_DELETED,
    FILE_DOWNLOADED,
    FILE_UPDATED,
    FILE_UPLOADED,
    FILE_VERSION_CREATED,
    NEW_NOTIFICATION,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.announcement import NotificationFanout
from akcent.schemas.file import (
    DownloadHistoryRead,
    FileCommentCreate,
    FileCommentRead,
    FileRead,
    FileSummary,
    FileUpdate,
    FileUpload,
    FileVersionRead,
    parse_allowed_roles,
)
from akcent.services.errors import NotFoundError, PayloadTooLargeError
from akcent.services.file_service import FileService
from akcent.services.webhook_service import WebhookNotifier, WebhookService, get_notifier
from akcent.storage.blob import (
    BlobStore,
    BlobTooLargeError,
    StoredBlob,
    get_blob_store,
)

logger = structlog.get_logger()
router = APIRouter()


def _validation_error(e: ValidationError) -> RequestValidationError:
    return RequestValidationError(
        [{**err, "loc": ("body", *err["loc"])} for err in e.errors()]
    )


async def _store_upload(store: BlobStore, upload: UploadFile) -> StoredBlob:
    try:
        return await store.store(upload, upload.filename or "")
    except BlobTooLargeError as e:
        raise PayloadTooLargeError(str(e))
    finally:
        await upload.close()


# ─── Customer-facing ─────────────────────────────────────


@router.get("/files", response_model=list[FileRead])
async def list_files(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Files the caller's role may download, newest first."""
    return await FileService(db).list_for_role(user.role)


@router.post("/files/{file_id}/download")
async def download_file(
    file_id: uuid.UUID,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    svc = FileService(db)
    f = await svc.get_for_download(file_id, user.role)
    if not await store.exists(f.filename):
        logger.error("file.blob_missing", file_id=str(f.id), blob=f.filename)
        raise NotFoundError("File not found on server")

    entry = await svc.record_download(user, f)
    await broadcaster.broadcast(
        FILE_DOWNLOADED,
        {"id": str(entry.id), "fileId": str(f.id), "userId": str(user.id)},
        user_ids=[user.id],
        roles=STAFF_ROLES,
    )

    targets = await WebhookService(db).targets_for("download")
    if targets:
        background.add_task(
            notifier.notify, targets, "download", "File Downloaded",
            f"{user.username} downloaded {f.name}",
        )
    return FileResponse(store.resolve(f.filename), filename=f.name, media_type="application/octet-stream")


@router.get("/files/{file_id}/versions", response_model=list[FileVersionRead])
async def list_versions(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = FileService(db)
    f = await svc.get_file(file_id)
    if user.role not in f.allowed_roles and not has_permission(user.role, "files.read_all"):
        raise NotFoundError("File not found")
    return await svc.list_versions(file_id)


@router.get("/downloads/history", response_model=list[DownloadHistoryRead])
async def my_download_history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await FileService(db).user_history(user.id)
    return [
        DownloadHistoryRead(
            id=h.id, user_id=h.user_id, file_id=h.file_id, downloaded_at=h.downloaded_at,
            file=FileSummary.model_validate(f),
        )
        for h, f in rows
    ]


# ─── Admin ───────────────────────────────────────────────


@router.get("/admin/files", response_model=list[FileRead])
async def list_all_files(
    _: User = Depends(require("files.read_all")),
    db: AsyncSession = Depends(get_db),
):
    return await FileService(db).list_all()


@router.post("/admin/files", response_model=FileRead, status_code=201)
async def upload_file(
    request: Request,
    background: BackgroundTasks,
    file: UploadFile = File(...),
    name: str = Form(...),
    allowed_roles: str = Form(..., alias="allowedRoles"),
    description: Optional[str] = Form(None),
    version: Optional[str] = Form(None),
    category: str = Form("other"),
    expires_at: Optional[datetime] = Form(None, alias="expiresAt"),
    admin: User = Depends(require("files.manage")),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    try:
        roles = parse_allowed_roles(allowed_roles)
    except ValueError as e:
        raise RequestValidationError(
            [{"loc": ("body", "allowedRoles"), "msg": str(e), "type": "value_error"}]
        )
    try:
        meta = FileUpload.model_validate(
            {
                "name": name,
                "description": description,
                "version": version,
                "category": category,
                "allowedRoles": roles,
                "expiresAt": expires_at,
            }
        )
    except ValidationError as e:
        raise _validation_error(e)

    blob = await _store_upload(store, file)
    try:
        f, notified = await FileService(db).create_file(
            name=meta.name,
            description=meta.description,
            version=meta.version,
            category=meta.category.value,
            allowed_roles=[r.value for r in meta.allowed_roles],
            expires_at=meta.expires_at,
            blob=blob,
            actor=actor_for(admin, request),
        )
    except Exception:
        await store.delete(blob.name)
        raise

    out = FileRead.model_validate(f)
    await broadcaster.publish(FILE_UPLOADED, out)
    await broadcaster.publish(
        NEW_NOTIFICATION,
        NotificationFanout(
            user_ids=notified, type="file_upload", title=f.name, related_entity_id=f.id
        ),
    )

    targets = await WebhookService(db).targets_for("file_upload")
    if targets:
        background.add_task(
            notifier.notify, targets, "file_upload", "New File Uploaded",
            f"{f.name}" + (f" v{f.version}" if f.version else ""),
        )
    return out


@router.patch("/admin/files/{file_id}", response_model=FileRead)
async def update_file(
    file_id: uuid.UUID,
    body: FileUpdate,
    request: Request,
    admin: User = Depends(require("files.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    f = await FileService(db).update_file(
        file_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = FileRead.model_validate(f)
    await broadcaster.publish(FILE_UPDATED, out)
    return out


@router.delete("/admin/files/{file_id}", status_code=204)
async def delete_file(
    file_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("files.manage")),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    blobs = await FileService(db).delete_file(file_id, actor_for(admin, request))
    for name in blobs:
        await store.delete(name)
    await broadcaster.broadcast(FILE_DELETED, {"id": str(file_id)})


@router.post(
    "/admin/files/{file_id}/versions", response_model=FileVersionRead, status_code=201
)
async def upload_version(
    file_id: uuid.UUID,
    request: Request,
    file: UploadFile = File(...),
    version: str = Form(..., min_length=1, max_length=50),
    admin: User = Depends(require("files.manage")),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    svc = FileService(db)
    await svc.get_file(file_id)
    blob = await _store_upload(store, file)
    try:
        v, _ = await svc.add_version(file_id, version, blob, actor_for(admin, request))
    except Exception:
        await store.delete(blob.name)
        raise
    out = FileVersionRead.model_validate(v)
    await broadcaster.publish(FILE_VERSION_CREATED, out)
    return out


@router.get("/admin/downloads/history", response_model=list[DownloadHistoryRead])
async def all_download_history(
    _: User = Depends(require("downloads.read_all")),
    db: AsyncSession = Depends(get_db),
):
    rows = await FileService(db).all_history()
    return [
        DownloadHistoryRead(
            id=h.id, user_id=h.user_id, file_id=h.file_id, downloaded_at=h.downloaded_at,
            file=FileSummary.model_validate(f), username=u.username,
        )
        for h, f, u in rows
    ]


# ─── Comments (admin notes) ──────────────────────────────


@router.get("/files/{file_id}/comments", response_model=list[FileCommentRead])
async def list_comments(
    file_id: uuid.UUID,
    _: User = Depends(require("files.comment")),
    db: AsyncSession = Depends(get_db),
):
    rows = await FileService(db).list_comments(file_id)
    return [
        FileCommentRead.model_validate(c).model_copy(update={"created_by_username": username})
        for c, username in rows
    ]


@router.post("/files/{file_id}/comments", response_model=FileCommentRead, status_code=201)
async def add_comment(
    file_id: uuid.UUID,
    body: FileCommentCreate,
    request: Request,
    admin: User = Depends(require("files.comment")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await FileService(db).add_comment(file_id, body.comment, actor_for(admin, request))
    out = FileCommentRead.model_validate(c).model_copy(
        update={"created_by_username": admin.username}
    )
    await broadcaster.publish(FILE_COMMENT_CREATED, out, roles=ADMIN_ONLY)
    return out


@router.delete("/files/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("files.comment")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await FileService(db).delete_comment(comment_id, actor_for(admin, request))
    await broadcaster.broadcast(
        FILE_COMMENT_DELETED,
        {"id": str(comment_id), "fileId": str(c.file_id)},
        roles=ADMIN_ONLY,
    )
