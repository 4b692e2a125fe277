"""
Initial structure schema: roles, users, zones, groups, sectors, works,
weekly tasks and the audit trail.

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c3e5f70001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CAPABILITIES = (
    "can_create_zone_admin",
    "can_view_zone_admin",
    "can_delete_zone_admin",
    "can_create_group",
    "can_view_group",
    "can_view_sector",
    "can_create_work",
    "can_view_work",
    "can_update_work",
    "can_create_weeklyTask",
    "can_view_weeklyTask",
    "can_update_weeklyTask",
)


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return cols


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "capability",
            sa.Enum(*CAPABILITIES, name="capability_enum", native_enum=False, length=64),
            nullable=False,
        ),
        sa.UniqueConstraint("role_id", "capability", name="uq_role_permissions_role_capability"),
    )
    op.create_index("ix_role_permissions_role_id", "role_permissions", ["role_id"])

    # zone / group / sector foreign keys are added once those tables exist
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=128), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=64), nullable=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("zone_id", sa.String(length=36), nullable=True),
        sa.Column("group_id", sa.String(length=36), nullable=True),
        sa.Column("sector_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_role_id", "users", ["role_id"])
    op.create_index("ix_users_zone_id", "users", ["zone_id"])
    op.create_index("ix_users_group_id", "users", ["group_id"])
    op.create_index("ix_users_sector_id", "users", ["sector_id"])
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_is_superuser", "users", ["is_superuser"])
    op.create_index("idx_users_role_active", "users", ["role_id", "is_active"])

    op.create_table(
        "zones",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("zone_name", sa.String(length=255), nullable=False),
        sa.Column("city_name", sa.String(length=255), nullable=True),
        sa.Column("email_address", sa.String(length=255), nullable=False),
        sa.Column("contact_phone_number", sa.String(length=64), nullable=True),
        sa.Column(
            "admin_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_zones_admin_user_id"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_zones_zone_name", "zones", ["zone_name"], unique=True)
    op.create_index("ix_zones_admin_user_id", "zones", ["admin_user_id"], unique=True)

    op.create_table(
        "groups",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("zone_id", sa.String(length=36), sa.ForeignKey("zones.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("email_address", sa.String(length=255), nullable=False),
        sa.Column("contact_phone_number", sa.String(length=64), nullable=True),
        sa.Column(
            "admin_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_groups_admin_user_id"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("zone_id", "group_name", name="uq_groups_zone_name"),
    )
    op.create_index("ix_groups_zone_id", "groups", ["zone_id"])
    op.create_index("ix_groups_admin_user_id", "groups", ["admin_user_id"])

    op.create_table(
        "sectors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("zone_id", sa.String(length=36), sa.ForeignKey("zones.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", sa.String(length=36), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_sectors_zone_id", "sectors", ["zone_id"])
    op.create_index("ix_sectors_group_id", "sectors", ["group_id"])

    with op.batch_alter_table("users") as batch:
        batch.create_foreign_key("fk_users_zone_id", "zones", ["zone_id"], ["id"], ondelete="SET NULL")
        batch.create_foreign_key("fk_users_group_id", "groups", ["group_id"], ["id"], ondelete="SET NULL")
        batch.create_foreign_key("fk_users_sector_id", "sectors", ["sector_id"], ["id"], ondelete="SET NULL")

    op.create_table(
        "works",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("assigned_by", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("sector_id", sa.Integer(), sa.ForeignKey("sectors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("planned_start_date", sa.Date(), nullable=True),
        sa.Column("planned_end_date", sa.Date(), nullable=True),
        sa.Column("quality", sa.String(length=64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("time_required", sa.Integer(), nullable=True),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        sa.Column(
            "status",
            sa.Enum("unassigned", "assigned", name="work_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "created_by_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_works_assigned_by", "works", ["assigned_by"])
    op.create_index("ix_works_sector_id", "works", ["sector_id"])
    op.create_index("ix_works_status", "works", ["status"])
    op.create_index("ix_works_status_created", "works", ["status", "created_at"])

    op.create_table(
        "work_sector_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("work_id", sa.String(length=36), sa.ForeignKey("works.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sector_id", sa.Integer(), sa.ForeignKey("sectors.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "assigned_by_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("work_id", "sector_id", name="uq_work_sector_assignment"),
    )
    op.create_index("ix_work_sector_assignments_work_id", "work_sector_assignments", ["work_id"])
    op.create_index("ix_work_sector_assignments_sector_id", "work_sector_assignments", ["sector_id"])

    op.create_table(
        "weekly_tasks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "unassigned",
                "picked",
                "in_progress",
                "completed",
                name="weekly_task_status_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("work_id", sa.String(length=36), sa.ForeignKey("works.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("sector_id", sa.Integer(), sa.ForeignKey("sectors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("picked_by", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("picked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("work_id", "sector_id", "week_number", name="uq_weekly_task_work_sector_week"),
    )
    op.create_index("ix_weekly_tasks_work_id", "weekly_tasks", ["work_id"])
    op.create_index("ix_weekly_tasks_sector_id", "weekly_tasks", ["sector_id"])
    op.create_index("ix_weekly_tasks_picked_by", "weekly_tasks", ["picked_by"])
    op.create_index("ix_weekly_tasks_sector_status", "weekly_tasks", ["sector_id", "status"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column(
            "actor_user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_events_actor_user_id", "audit_events", ["actor_user_id"])
    op.create_index("ix_audit_events_occurred_at", "audit_events", ["occurred_at"])
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("weekly_tasks")
    op.drop_table("work_sector_assignments")
    op.drop_table("works")
    with op.batch_alter_table("users") as batch:
        batch.drop_constraint("fk_users_sector_id", type_="foreignkey")
        batch.drop_constraint("fk_users_group_id", type_="foreignkey")
        batch.drop_constraint("fk_users_zone_id", type_="foreignkey")
    op.drop_table("sectors")
    op.drop_table("groups")
    op.drop_table("zones")
    op.drop_table("users")
    op.drop_table("role_permissions")
    op.drop_table("roles")
