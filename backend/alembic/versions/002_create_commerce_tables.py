"""Create album, product, cart, order and favorite tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 12:00:00.000000+00:00

What:  The storefront side of the schema: albums (with photo membership),
       products, per-user cart lines, orders with their items, and the two
       favorites join tables.
How:   Same conventions as 001: UUID keys via gen_random_uuid(),
       TIMESTAMP WITH TIME ZONE, JSONB lists/objects, GIN indexes on tags.

Rollback: downgrade() drops every table created here (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _created_at():
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _timestamps():
    return [
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _jsonb(name: str, default: str = "'[]'::jsonb"):
    return sa.Column(name, postgresql.JSONB(), nullable=False, server_default=sa.text(default))


def _flag(name: str):
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text("false"))


def _fk(name: str, target: str, ondelete: str, nullable: bool = False):
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "albums",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image_url", sa.String(2048), nullable=False),
        _jsonb("tags"),
        _flag("is_featured"),
        _flag("is_hidden"),
        _fk("created_by", "users.id", "SET NULL", nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title"),
    )
    op.create_index("idx_albums_created_at", "albums", [sa.text("created_at DESC")])
    op.create_index("idx_albums_featured", "albums", ["is_featured"])
    op.create_index("idx_albums_tags", "albums", ["tags"], postgresql_using="gin")

    op.create_table(
        "album_photos",
        _fk("album_id", "albums.id", "CASCADE"),
        _fk("photo_id", "photos.id", "CASCADE"),
        sa.PrimaryKeyConstraint("album_id", "photo_id"),
    )

    op.create_table(
        "products",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("thumbnail_url", sa.String(2048), nullable=False),
        _jsonb("tags"),
        sa.Column("type", sa.String(16), nullable=False),
        _flag("is_featured"),
        _flag("is_latest"),
        _flag("is_on_sale"),
        sa.Column("digital_file_url", sa.String(2048), nullable=True),
        sa.Column("digital_file_size", sa.Integer(), nullable=True),
        sa.Column("digital_format", sa.String(16), nullable=True),
        _jsonb("print_sizes"),
        _jsonb("paper_types"),
        _jsonb("frame_options"),
        sa.Column("shipping_details", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('digital', 'print')", name="ck_products_type"),
        sa.CheckConstraint("price > 0", name="ck_products_price"),
        sa.CheckConstraint("stock >= 0", name="ck_products_stock"),
    )
    op.create_index("idx_products_created_at", "products", [sa.text("created_at DESC")])
    op.create_index("idx_products_category", "products", ["category"])
    op.create_index("idx_products_tags", "products", ["tags"], postgresql_using="gin")

    op.create_table(
        "cart_items",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("product_id", "products.id", "CASCADE"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        _jsonb("selected_options", "'{}'::jsonb"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        sa.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),
    )

    op.create_table(
        "orders",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("type", sa.String(16), nullable=False, server_default=sa.text("'mixed'")),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        _flag("is_free_shipping"),
        _jsonb("shipping_address", "'{}'::jsonb"),
        sa.Column("payment_id", sa.String(255), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'paid', 'shipped', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
        sa.CheckConstraint("type IN ('digital', 'print', 'mixed')", name="ck_orders_type"),
    )
    op.create_index("idx_orders_user_id", "orders", ["user_id"])
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_created_at", "orders", [sa.text("created_at DESC")])

    op.create_table(
        "order_items",
        _id(),
        _fk("order_id", "orders.id", "CASCADE"),
        # Snapshot columns below outlive the product
        _fk("product_id", "products.id", "SET NULL", nullable=True),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("product_type", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        _jsonb("selected_options", "'{}'::jsonb"),
        sa.Column("download_link", sa.String(2048), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
    )
    op.create_index("idx_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "favorite_photos",
        _fk("user_id", "users.id", "CASCADE"),
        _fk("photo_id", "photos.id", "CASCADE"),
        _created_at(),
        sa.PrimaryKeyConstraint("user_id", "photo_id"),
    )
    op.create_table(
        "favorite_products",
        _fk("user_id", "users.id", "CASCADE"),
        _fk("product_id", "products.id", "CASCADE"),
        _created_at(),
        sa.PrimaryKeyConstraint("user_id", "product_id"),
    )


def downgrade() -> None:
    """Drop the storefront tables. Albums, products, carts, orders and favorites are lost."""
    op.drop_table("favorite_products")
    op.drop_table("favorite_photos")
    op.drop_index("idx_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("idx_orders_created_at", table_name="orders")
    op.drop_index("idx_orders_status", table_name="orders")
    op.drop_index("idx_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_index("idx_products_tags", table_name="products")
    op.drop_index("idx_products_category", table_name="products")
    op.drop_index("idx_products_created_at", table_name="products")
    op.drop_table("products")
    op.drop_table("album_photos")
    op.drop_index("idx_albums_tags", table_name="albums")
    op.drop_index("idx_albums_featured", table_name="albums")
    op.drop_index("idx_albums_created_at", table_name="albums")
    op.drop_table("albums")
