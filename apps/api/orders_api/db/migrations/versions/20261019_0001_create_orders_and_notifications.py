"""create orders, order_notifications

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

order_status = sa.Enum(
    "AWAITING_PAYMENT",
    "PROCESSING",
    "DELIVERED",
    "Completed",
    "CANCELLED",
    name="order_status",
)


def upgrade() -> None:
    bind = op.get_bind()
    order_status.create(bind, checkfirst=True)

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.String(length=64), nullable=False),
        sa.Column("invoice_id", sa.String(length=64), nullable=False),
        sa.Column("gig_id", sa.String(length=64), nullable=True),
        sa.Column("gig_cover_image", sa.String(length=1024), nullable=True),
        sa.Column("gig_main_title", sa.String(length=255), nullable=True),
        sa.Column("gig_basic_title", sa.String(length=255), nullable=True),
        sa.Column("gig_basic_description", sa.Text(), nullable=True),
        sa.Column("seller_id", sa.String(length=64), nullable=False),
        sa.Column("seller_username", sa.String(length=255), nullable=False),
        sa.Column("seller_image", sa.String(length=1024), nullable=True),
        sa.Column("seller_email", sa.String(length=255), nullable=True),
        sa.Column("buyer_id", sa.String(length=64), nullable=False),
        sa.Column("buyer_username", sa.String(length=255), nullable=False),
        sa.Column("buyer_image", sa.String(length=1024), nullable=True),
        sa.Column("buyer_email", sa.String(length=255), nullable=True),
        sa.Column("offer", sa.JSON(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("service_fee", sa.Float(), nullable=False),
        sa.Column("requirements", sa.Text(), nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.Column("cancelled", sa.Boolean(), nullable=False),
        sa.Column("delivered", sa.Boolean(), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_ordered", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tx_ref", sa.String(length=128), nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=True),
        sa.Column("gateway_status", sa.String(length=64), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("payment_fee", sa.Float(), nullable=True),
        sa.Column("payment_intent", sa.String(length=255), nullable=True),
        sa.Column("request_extension", sa.JSON(), nullable=False),
        sa.Column("delivered_work", sa.JSON(), nullable=False),
        sa.Column("events", sa.JSON(), nullable=False),
        sa.Column("buyer_review", sa.JSON(), nullable=True),
        sa.Column("seller_review", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_order_id"), "orders", ["order_id"], unique=True)
    op.create_index(op.f("ix_orders_tx_ref"), "orders", ["tx_ref"], unique=True)
    op.create_index(op.f("ix_orders_seller_id"), "orders", ["seller_id"], unique=False)
    op.create_index(op.f("ix_orders_buyer_id"), "orders", ["buyer_id"], unique=False)

    op.create_table(
        "order_notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_to", sa.String(length=255), nullable=False),
        sa.Column("sender_username", sa.String(length=255), nullable=False),
        sa.Column("sender_picture", sa.String(length=1024), nullable=False),
        sa.Column("receiver_username", sa.String(length=255), nullable=False),
        sa.Column("receiver_picture", sa.String(length=1024), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("order_id", sa.String(length=64), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_order_notifications_user_to"), "order_notifications", ["user_to"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_order_notifications_user_to"), table_name="order_notifications")
    op.drop_table("order_notifications")

    op.drop_index(op.f("ix_orders_buyer_id"), table_name="orders")
    op.drop_index(op.f("ix_orders_seller_id"), table_name="orders")
    op.drop_index(op.f("ix_orders_tx_ref"), table_name="orders")
    op.drop_index(op.f("ix_orders_order_id"), table_name="orders")
    op.drop_table("orders")

    bind = op.get_bind()
    order_status.drop(bind, checkfirst=True)
