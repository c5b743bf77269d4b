"""FAQ service — products and their issue/solution items.

Learn: Deleting a product removes its items through ON DELETE CASCADE, so
the route sends one faq_product_deleted event and clients drop the item
lists along with it.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import FaqItem, FaqProduct, utcnow
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import ConflictError, NotFoundError


class FaqService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ─── Products ───────────────────────────────────────

    async def list_products(self) -> list[FaqProduct]:
        result = await self.db.execute(
            select(FaqProduct).order_by(FaqProduct.display_order, FaqProduct.name)
        )
        return list(result.scalars().all())

    async def get_product(self, product_id: uuid.UUID) -> FaqProduct:
        product = await self.db.get(FaqProduct, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def _name_taken(self, name: str, exclude: uuid.UUID | None = None) -> bool:
        q = select(FaqProduct.id).where(FaqProduct.name == name)
        if exclude is not None:
            q = q.where(FaqProduct.id != exclude)
        return (await self.db.execute(q)).first() is not None

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A product with this name already exists")

    async def create_product(self, data: dict, actor: Actor) -> FaqProduct:
        if await self._name_taken(data["name"]):
            raise ConflictError("A product with this name already exists")
        product = FaqProduct(**data)
        self.db.add(product)
        await self.db.flush()
        self.audit.record(actor, CREATE, "faq_product", product.id, details=product.name)
        await self._commit_unique()
        return product

    async def update_product(self, product_id: uuid.UUID, changes: dict, actor: Actor) -> FaqProduct:
        product = await self.get_product(product_id)
        if changes.get("name") and await self._name_taken(changes["name"], exclude=product.id):
            raise ConflictError("A product with this name already exists")
        for field, value in changes.items():
            if value is None and field != "description":
                continue
            setattr(product, field, value)
        product.updated_at = utcnow()
        self.audit.record(actor, UPDATE, "faq_product", product.id, details=", ".join(sorted(changes)))
        await self._commit_unique()
        return product

    async def delete_product(self, product_id: uuid.UUID, actor: Actor) -> None:
        product = await self.get_product(product_id)
        await self.db.delete(product)
        self.audit.record(actor, DELETE, "faq_product", product_id, details=product.name)
        await self.db.commit()

    # ─── Items ──────────────────────────────────────────

    async def list_items(self, product_id: uuid.UUID) -> list[FaqItem]:
        result = await self.db.execute(
            select(FaqItem)
            .where(FaqItem.product_id == product_id)
            .order_by(FaqItem.display_order, FaqItem.created_at)
        )
        return list(result.scalars().all())

    async def get_item(self, item_id: uuid.UUID) -> FaqItem:
        item = await self.db.get(FaqItem, item_id)
        if item is None:
            raise NotFoundError("FAQ item not found")
        return item

    async def create_item(self, data: dict, actor: Actor) -> FaqItem:
        await self.get_product(data["product_id"])
        item = FaqItem(**data)
        self.db.add(item)
        await self.db.flush()
        self.audit.record(actor, CREATE, "faq_item", item.id)
        await self.db.commit()
        return item

    async def update_item(self, item_id: uuid.UUID, changes: dict, actor: Actor) -> FaqItem:
        item = await self.get_item(item_id)
        for field, value in changes.items():
            if value is not None:
                setattr(item, field, value)
        item.updated_at = utcnow()
        self.audit.record(actor, UPDATE, "faq_item", item.id, details=", ".join(sorted(changes)))
        await self.db.commit()
        return item

    async def delete_item(self, item_id: uuid.UUID, actor: Actor) -> None:
        item = await self.get_item(item_id)
        await self.db.delete(item)
        self.audit.record(actor, DELETE, "faq_item", item_id)
        await self.db.commit()
