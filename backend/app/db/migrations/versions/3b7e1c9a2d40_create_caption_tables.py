"""create caption tables

Revision ID: 3b7e1c9a2d40
Revises:
Create Date: 2026-10-16 09:12:41.318207

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b7e1c9a2d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1. shop 级：session / Visionati 设置 / 自动描述开关
    op.create_table(
        "shop_sessions",
        sa.Column("shop", sa.String(length=255), nullable=False),
        sa.Column("access_token", sa.String(length=255), nullable=False),
        sa.Column("scope", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("shop", name=op.f("pk_shop_sessions")),
    )
    op.create_table(
        "shop_visionati_settings",
        sa.Column("shop_id", sa.String(length=255), nullable=False),
        sa.Column("api_key", sa.String(length=255), nullable=True),
        sa.Column("backend", sa.String(length=32), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=True),
        sa.Column("custom_prompt", sa.Text(), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("shop_id", name=op.f("pk_shop_visionati_settings")),
    )
    op.create_table(
        "shop_auto_image_descriptions",
        sa.Column("shop_id", sa.String(length=255), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.PrimaryKeyConstraint("shop_id", name=op.f("pk_shop_auto_image_descriptions")),
    )

    # 2. 审计表（只追加）
    op.create_table(
        "shop_product_description_updates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=False),
        sa.Column("shop_id", sa.String(length=255), nullable=False),
        sa.Column("old_description", sa.Text(), nullable=True),
        sa.Column("new_description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shop_product_description_updates")),
    )
    op.create_index(
        op.f("ix_shop_product_description_updates_product_id"),
        "shop_product_description_updates",
        ["product_id"],
    )
    op.create_index(
        "ix_shop_product_description_updates_shop_product",
        "shop_product_description_updates",
        ["shop_id", "product_id"],
    )

    # 3. bulk 任务 + 关联
    op.create_table(
        "shop_product_catalog_bulk_update_requests",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("shop_id", sa.String(length=255), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("product_ids", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shop_product_catalog_bulk_update_requests")),
    )
    op.create_index(
        "ix_shop_product_catalog_bulk_update_requests_shop_start",
        "shop_product_catalog_bulk_update_requests",
        ["shop_id", "start_time"],
    )
    op.create_table(
        "shop_bulk_update_requests_description_updates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("bulk_update_request_id", sa.String(length=36), nullable=False),
        sa.Column("product_description_update_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["bulk_update_request_id"],
            ["shop_product_catalog_bulk_update_requests.id"],
            name=op.f("fk_shop_bulk_update_requests_description_updates_bulk_update_request_id_shop_product_catalog_bulk_update_requests"),
        ),
        sa.ForeignKeyConstraint(
            ["product_description_update_id"],
            ["shop_product_description_updates.id"],
            name=op.f("fk_shop_bulk_update_requests_description_updates_product_description_update_id_shop_product_description_updates"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shop_bulk_update_requests_description_updates")),
        sa.UniqueConstraint(
            "product_description_update_id",
            name=op.f("uq_shop_bulk_update_requests_description_updates_product_description_update_id"),
        ),
    )
    op.create_index(
        op.f("ix_shop_bulk_update_requests_description_updates_bulk_update_request_id"),
        "shop_bulk_update_requests_description_updates",
        ["bulk_update_request_id"],
    )

    # 4. webhook 幂等 + 关联
    op.create_table(
        "shop_webhook_requests",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("shop_id", sa.String(length=255), nullable=False),
        sa.Column("topic", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shop_webhook_requests")),
    )
    op.create_table(
        "shop_webhook_requests_description_updates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("webhook_request_id", sa.String(length=255), nullable=False),
        sa.Column("product_description_update_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["webhook_request_id"],
            ["shop_webhook_requests.id"],
            name=op.f("fk_shop_webhook_requests_description_updates_webhook_request_id_shop_webhook_requests"),
        ),
        sa.ForeignKeyConstraint(
            ["product_description_update_id"],
            ["shop_product_description_updates.id"],
            name=op.f("fk_shop_webhook_requests_description_updates_product_description_update_id_shop_product_description_updates"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shop_webhook_requests_description_updates")),
        sa.UniqueConstraint(
            "product_description_update_id",
            name=op.f("uq_shop_webhook_requests_description_updates_product_description_update_id"),
        ),
    )
    op.create_index(
        op.f("ix_shop_webhook_requests_description_updates_webhook_request_id"),
        "shop_webhook_requests_description_updates",
        ["webhook_request_id"],
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_shop_webhook_requests_description_updates_webhook_request_id"),
        table_name="shop_webhook_requests_description_updates",
    )
    op.drop_table("shop_webhook_requests_description_updates")
    op.drop_table("shop_webhook_requests")

    op.drop_index(
        op.f("ix_shop_bulk_update_requests_description_updates_bulk_update_request_id"),
        table_name="shop_bulk_update_requests_description_updates",
    )
    op.drop_table("shop_bulk_update_requests_description_updates")
    op.drop_index(
        "ix_shop_product_catalog_bulk_update_requests_shop_start",
        table_name="shop_product_catalog_bulk_update_requests",
    )
    op.drop_table("shop_product_catalog_bulk_update_requests")

    op.drop_index("ix_shop_product_description_updates_shop_product", table_name="shop_product_description_updates")
    op.drop_index(op.f("ix_shop_product_description_updates_product_id"), table_name="shop_product_description_updates")
    op.drop_table("shop_product_description_updates")

    op.drop_table("shop_auto_image_descriptions")
    op.drop_table("shop_visionati_settings")
    op.drop_table("shop_sessions")
