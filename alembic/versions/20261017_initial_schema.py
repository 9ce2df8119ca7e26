# alembic/versions/20261017_initial_schema.py
"""initial schema: products, customers, orders, order_items"""

import sqlalchemy as sa

from alembic import op

revision = "20261017_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("reference", sa.String(128), nullable=False),
        sa.Column("size", sa.String(64), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("brand", sa.String(255)),
        sa.Column("section", sa.String(255)),
        sa.Column("product_line", sa.String(255)),
        sa.Column("bar_code", sa.String(64)),
        sa.Column("image_url", sa.String(1024)),
        sa.Column("retail_price", sa.Numeric(14, 2)),
        sa.Column("wholesale_price", sa.Numeric(14, 2)),
        sa.Column("stock", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("reserved_stock", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk__products"),
        sa.UniqueConstraint("reference", "size", name="uq_products_reference_size"),
        sa.CheckConstraint("stock >= 0", name="ck__products__stock_non_negative"),
        sa.CheckConstraint("reserved_stock >= 0", name="ck__products__reserved_stock_non_negative"),
        sa.CheckConstraint(
            "wholesale_price IS NULL OR wholesale_price >= 0", name="ck__products__wholesale_price_non_negative"
        ),
        sa.CheckConstraint(
            "retail_price IS NULL OR retail_price >= 0", name="ck__products__retail_price_non_negative"
        ),
    )
    op.create_index("ix__products__reference", "products", ["reference"])
    op.create_index("ix__products__brand", "products", ["brand"])
    op.create_index("ix__products__section", "products", ["section"])
    op.create_index("ix__products__product_line", "products", ["product_line"])
    op.create_index("ix__products__bar_code", "products", ["bar_code"])
    op.create_index("ix__products__created_at", "products", ["created_at"])
    op.create_index("ix_products_stock_reserved", "products", ["stock", "reserved_stock"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32)),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk__customers"),
    )
    op.create_index("ix__customers__email", "customers", ["email"])
    op.create_index("ix__customers__created_at", "customers", ["created_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("customer_id", sa.String(64)),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_company", sa.String(255)),
        sa.Column("customer_phone", sa.String(32)),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk__orders"),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["customers.id"], name="fk__orders__customer_id__customers", ondelete="SET NULL"
        ),
        sa.CheckConstraint("total_amount >= 0", name="ck__orders__total_non_negative"),
    )
    op.create_index("ix__orders__customer_id", "orders", ["customer_id"])
    op.create_index("ix__orders__status", "orders", ["status"])
    op.create_index("ix__orders__created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.Integer, nullable=False),
        sa.Column("product_id", sa.Integer, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk__order_items"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], name="fk__order_items__order_id__orders", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], name="fk__order_items__product_id__products", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("quantity > 0", name="ck__order_items__quantity_positive"),
        sa.CheckConstraint(
            "unit_price >= 0 AND total_price >= 0", name="ck__order_items__prices_non_negative"
        ),
    )
    op.create_index("ix__order_items__order_id", "order_items", ["order_id"])
    op.create_index("ix__order_items__product_id", "order_items", ["product_id"])
    op.create_index("ix__order_items__created_at", "order_items", ["created_at"])
    op.create_index("ix_order_items_order_product", "order_items", ["order_id", "product_id"])


def downgrade():
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("customers")
    op.drop_table("products")
