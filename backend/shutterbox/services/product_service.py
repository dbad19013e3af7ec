"""
Shutterbox Backend — Product Service
======================================

What:  The storefront's product catalogue: listing, lookup and admin edits.
Who:   Called by the /api/products route handlers; CartService and
       OrderService read products through load_product().

Rules:
    - A digital product must carry a valid digital_file_url.
    - thumbnail_url (and digital_file_url when given) must be URLs.
    - Search terms shorter than 2 characters are rejected.
    - Print option lists are trimmed and de-duplicated like tags, but keep
      their case ("A4 Matte" stays as written).
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import String, cast, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import DatabaseError, NotFoundError, ValidationError
from shutterbox.models.product import Product, ProductType
from shutterbox.schemas.common import MessageResponse
from shutterbox.schemas.product import (
    ProductCreateRequest,
    ProductFullResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from shutterbox.services.pagination import clamp, fetch_page, like_pattern, page_info
from shutterbox.services.photo_service import normalize_bool, normalize_tags, normalize_url

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
MAX_PAGE_SIZE = 50
LATEST_COUNT = 10
FLAGS = ("is_featured", "is_latest", "is_on_sale")
OPTION_LISTS = ("print_sizes", "paper_types", "frame_options")


def clean_options(values: List[str]) -> List[str]:
    cleaned: List[str] = []
    for value in values:
        option = value.strip()
        if option and option not in cleaned:
            cleaned.append(option)
    return cleaned


class ProductService:

    async def load_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        try:
            result = await db.execute(select(Product).where(Product.id == product_id))
        except SQLAlchemyError as e:
            logger.error("Database error fetching product %s: %s", product_id, e)
            raise DatabaseError(context={"product_id": str(product_id)})
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError(resource="product", resource_id=str(product_id))
        return product

    def _normalize(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Apply the shared field rules to a create or update payload in place."""
        if changes.get("thumbnail_url") is not None:
            changes["thumbnail_url"] = normalize_url(changes["thumbnail_url"], "thumbnail_url")
        if changes.get("digital_file_url") is not None:
            changes["digital_file_url"] = normalize_url(changes["digital_file_url"], "digital_file_url")
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        for flag in FLAGS:
            if flag in changes:
                changes[flag] = normalize_bool(changes[flag], flag)
        for name in OPTION_LISTS:
            if changes.get(name) is not None:
                changes[name] = clean_options(changes[name])
        return changes

    async def create_product(self, db: AsyncSession, request: ProductCreateRequest) -> ProductFullResponse:
        """
        Raises:
            ValidationError: bad URL, tags or flags, or a digital product
                without a download file
        """
        data = self._normalize(request.model_dump())
        if data["type"] == ProductType.DIGITAL.value and not data.get("digital_file_url"):
            raise ValidationError(
                message="Digital products require a digital_file_url",
                field="digital_file_url",
            )

        product = Product(id=uuid.uuid4(), **data)
        db.add(product)
        await db.flush()
        logger.info("Product %s created (%s, %s)", product.id, product.type, product.price)
        return ProductFullResponse.model_validate(product)

    async def list_products(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 12,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        on_sale: Optional[bool] = None,
    ) -> ProductListResponse:
        """Newest first, every filter optional and combined with AND."""
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_PAGE_SIZE)

        filters: List[Any] = []
        if category and category.strip():
            filters.append(Product.category == category.strip())
        if tag and tag.strip():
            filters.append(Product.tags.contains([tag.strip().lower()]))
        if featured is not None:
            filters.append(Product.is_featured.is_(featured))
        if on_sale is not None:
            filters.append(Product.is_on_sale.is_(on_sale))
        if search is not None:
            term = search.strip()
            if len(term) < MIN_SEARCH_LENGTH:
                raise ValidationError(
                    message=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
                    field="search",
                )
            pattern = like_pattern(term)
            filters.append(or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
                Product.category.ilike(pattern, escape="\\"),
                cast(Product.tags, String).ilike(pattern, escape="\\"),
            ))

        products, total = await fetch_page(
            db,
            select(Product).where(*filters),
            page,
            limit,
            Product.created_at.desc(),
            resource="products",
        )
        return ProductListResponse(
            products=[ProductResponse.model_validate(p) for p in products],
            pagination=page_info(page, limit, total),
        )

    async def list_latest(self, db: AsyncSession, limit: int = LATEST_COUNT) -> List[ProductResponse]:
        """Products flagged is_latest first, then by age."""
        limit = clamp(limit, 1, MAX_PAGE_SIZE)
        try:
            result = await db.execute(
                select(Product)
                .order_by(Product.is_latest.desc(), Product.created_at.desc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing latest products: %s", e)
            raise DatabaseError(message="Could not retrieve products. Please try again.")
        return [ProductResponse.model_validate(p) for p in result.scalars().all()]

    async def get_product(self, db: AsyncSession, product_id: uuid.UUID) -> ProductResponse:
        return ProductResponse.model_validate(await self.load_product(db, product_id))

    async def get_product_full(self, db: AsyncSession, product_id: uuid.UUID) -> ProductFullResponse:
        return ProductFullResponse.model_validate(await self.load_product(db, product_id))

    async def update_product(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        request: ProductUpdateRequest,
    ) -> ProductFullResponse:
        product = await self.load_product(db, product_id)
        changes = self._normalize(request.model_dump(exclude_unset=True))

        # Required columns cannot be cleared with an explicit null
        for field in ("name", "description", "price", "category", "stock", "thumbnail_url"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        for name in OPTION_LISTS:
            if name in changes and changes[name] is None:
                changes[name] = []

        file_url = changes.get("digital_file_url", product.digital_file_url)
        if product.type == ProductType.DIGITAL.value and not file_url:
            raise ValidationError(
                message="Digital products require a digital_file_url",
                field="digital_file_url",
            )

        for field, value in changes.items():
            setattr(product, field, value)
        await db.flush()

        logger.info("Product %s updated: %s", product.id, sorted(changes))
        return ProductFullResponse.model_validate(product)

    async def delete_product(self, db: AsyncSession, product_id: uuid.UUID) -> MessageResponse:
        """
        Cart lines and favorites of the product go with it; past order items
        keep their snapshot with product_id cleared.
        """
        product = await self.load_product(db, product_id)
        await db.delete(product)
        await db.flush()
        logger.info("Product %s deleted", product_id)
        return MessageResponse(message="Product deleted successfully")


# ── Singleton Instance ────────────────────────────────────────────────────
product_service = ProductService()
