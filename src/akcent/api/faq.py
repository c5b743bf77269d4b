"""FAQ API — public product/issue lists and admin management."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    FAQ_ITEM_CREATED,
    FAQ_ITEM_DELETED,
    FAQ_ITEM_UPDATED,
    FAQ_PRODUCT_CREATED,
    FAQ_PRODUCT_DELETED,
    FAQ_PRODUCT_UPDATED,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.faq import (
    FaqItemCreate,
    FaqItemRead,
    FaqItemUpdate,
    FaqProductCreate,
    FaqProductRead,
    FaqProductUpdate,
)
from akcent.services.faq_service import FaqService

router = APIRouter()


@router.get("/faq/products", response_model=list[FaqProductRead])
async def list_products(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await FaqService(db).list_products()


@router.get("/faq/items/{product_id}", response_model=list[FaqItemRead])
async def list_items(
    product_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await FaqService(db).list_items(product_id)


# ─── Admin: products ─────────────────────────────────────


@router.post("/admin/faq/products", response_model=FaqProductRead, status_code=201)
async def create_product(
    body: FaqProductCreate,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    product = await FaqService(db).create_product(body.model_dump(), actor_for(admin, request))
    out = FaqProductRead.model_validate(product)
    await broadcaster.publish(FAQ_PRODUCT_CREATED, out)
    return out


@router.patch("/admin/faq/products/{product_id}", response_model=FaqProductRead)
async def update_product(
    product_id: uuid.UUID,
    body: FaqProductUpdate,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    product = await FaqService(db).update_product(
        product_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = FaqProductRead.model_validate(product)
    await broadcaster.publish(FAQ_PRODUCT_UPDATED, out)
    return out


@router.delete("/admin/faq/products/{product_id}", status_code=204)
async def delete_product(
    product_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await FaqService(db).delete_product(product_id, actor_for(admin, request))
    await broadcaster.broadcast(FAQ_PRODUCT_DELETED, {"id": str(product_id)})


# ─── Admin: items ────────────────────────────────────────


@router.post("/admin/faq/items", response_model=FaqItemRead, status_code=201)
async def create_item(
    body: FaqItemCreate,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    item = await FaqService(db).create_item(body.model_dump(), actor_for(admin, request))
    out = FaqItemRead.model_validate(item)
    await broadcaster.publish(FAQ_ITEM_CREATED, out)
    return out


@router.patch("/admin/faq/items/{item_id}", response_model=FaqItemRead)
async def update_item(
    item_id: uuid.UUID,
    body: FaqItemUpdate,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    item = await FaqService(db).update_item(
        item_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = FaqItemRead.model_validate(item)
    await broadcaster.publish(FAQ_ITEM_UPDATED, out)
    return out


@router.delete("/admin/faq/items/{item_id}", status_code=204)
async def delete_item(
    item_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("faq.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    svc = FaqService(db)
    item = await svc.get_item(item_id)
    product_id = item.product_id
    await svc.delete_item(item_id, actor_for(admin, request))
    await broadcaster.broadcast(
        FAQ_ITEM_DELETED, {"id": str(item_id), "productId": str(product_id)}
    )
