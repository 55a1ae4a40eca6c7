"""Create RBAC tables and seed default roles

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates:
- roles (identity ids, generated ALWAYS so deleted ids are never reused)
- user_roles (identity provider subject -> role)
- route_permissions (role, route) -> level, level 1..3 only
- audit_events (append-only)

Seeds the member/admin/superadmin roles and their default grants.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Frozen copy of the seed data; later changes to the contract module must not
# rewrite history.
SEED_ROLES = [
    {"name": "member", "label": "Member", "rank": 0, "is_superadmin": False},
    {"name": "admin", "label": "Admin", "rank": 50, "is_superadmin": False},
    {"name": "superadmin", "label": "Superadmin", "rank": 100, "is_superadmin": True},
]

_READ, _WRITE, _ADMIN = 1, 2, 3

_TOOL_ROUTES = [
    "dashboard",
    "tools",
    "tools/files",
    "tools/journal",
    "tools/dispoplaner",
    "tools/dienstplaner",
    "tools/calender",
    "tools/messages",
]
_ALL_ROUTES = _TOOL_ROUTES + [
    "tools/storage",
    "tools/system",
    "admin",
    "admin/users",
    "admin/settings",
    "monitoring",
    "activity",
]

SEED_GRANTS = {
    "member": {route: _READ for route in _TOOL_ROUTES},
    "admin": {
        **{route: _WRITE for route in _ALL_ROUTES},
        "admin": _ADMIN,
        "admin/users": _READ,
        "admin/settings": _ADMIN,
        "activity": _READ,
    },
}


def upgrade() -> None:
    """Apply schema changes."""
    roles = op.create_table(
        "roles",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("rank", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "user_roles",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "role_id",
            sa.BigInteger(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_id_role_id"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    grants = op.create_table(
        "route_permissions",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True),
        sa.Column(
            "role_id",
            sa.BigInteger(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("route", sa.String(length=255), nullable=False),
        sa.Column("level", sa.SmallInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("role_id", "route", name="uq_route_permissions_role_id_route"),
        sa.CheckConstraint("level BETWEEN 1 AND 3", name="valid_route_permission_level"),
    )
    op.create_index("ix_route_permissions_role_id", "route_permissions", ["role_id"])
    op.create_index("ix_route_permissions_route", "route_permissions", ["route"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True),
        sa.Column("ts", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_user_id", sa.String(length=255), nullable=True),
        sa.Column("actor_email", sa.String(length=320), nullable=True),
        sa.Column("target", sa.Text(), nullable=True),
        sa.Column("detail", sa.JSON(), nullable=True),
        sa.CheckConstraint(
            "action IN ('access_denied', 'role_change', 'security_event')",
            name="valid_audit_action",
        ),
    )
    op.create_index("ix_audit_events_ts", "audit_events", ["ts"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_actor_user_id", "audit_events", ["actor_user_id"])

    op.bulk_insert(roles, SEED_ROLES)

    connection = op.get_bind()
    role_ids = dict(connection.execute(sa.text("SELECT name, id FROM roles")).fetchall())
    op.bulk_insert(
        grants,
        [
            {"role_id": role_ids[role_name], "route": route, "level": level}
            for role_name, routes in SEED_GRANTS.items()
            for route, level in routes.items()
        ],
    )


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index("ix_audit_events_actor_user_id", table_name="audit_events")
    op.drop_index("ix_audit_events_action", table_name="audit_events")
    op.drop_index("ix_audit_events_ts", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_route_permissions_route", table_name="route_permissions")
    op.drop_index("ix_route_permissions_role_id", table_name="route_permissions")
    op.drop_table("route_permissions")

    op.drop_index("ix_user_roles_role_id", table_name="user_roles")
    op.drop_index("ix_user_roles_user_id", table_name="user_roles")
    op.drop_table("user_roles")

    op.drop_index("ix_roles_name", table_name="roles")
    op.drop_table("roles")
