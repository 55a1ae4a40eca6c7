"""
Seed the default roles and grants, and optionally bootstrap a superadmin.

The initial migration already seeds roles and grants; this script restores
missing ones without touching existing rows and is the only way to attach the
first superadmin membership (the admin API requires a superadmin actor).

Usage:
    python -m scripts.seed_rbac
    python -m scripts.seed_rbac --superadmin <identity-id>
"""
import argparse
import asyncio
import os
import sys

# Add parent directory to path to import private_tools modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from private_tools.config import settings
from private_tools.crud.role import RoleRepository
from private_tools.crud.route_permission import RoutePermissionRepository
from private_tools.database import AsyncSessionLocal
from private_tools.rbac import contract


async def seed_rbac(superadmin_identity: str | None = None) -> None:
    async with AsyncSessionLocal() as session:
        role_repo = RoleRepository(session)
        grant_repo = RoutePermissionRepository(session)

        print("Seeding roles...")
        role_map = {}
        for role_data in contract.DEFAULT_ROLES:
            name = str(role_data["name"])
            existing = await role_repo.get_by_name(name)
            if existing:
                print(f"  Role '{name}' already exists, skipping...")
                role_map[name] = existing.id
                continue

            role = await role_repo.create_role(
                name=name,
                label=str(role_data["label"]),
                rank=int(role_data["rank"]),
                is_superadmin=bool(role_data["is_superadmin"]),
            )
            role_map[name] = role.id
            print(f"  ✓ Created role: {name}")

        print("\nSeeding default grants...")
        existing_pairs = {
            (grant.role_id, grant.route) for grant in await grant_repo.list_grants()
        }
        for role_name, grants in contract.DEFAULT_ROLE_GRANTS.items():
            role_id = role_map.get(role_name)
            if role_id is None:
                continue
            for route, level in grants.items():
                if (role_id, route) in existing_pairs:
                    continue
                await grant_repo.upsert_grant(role_id, route, int(level))
                print(f"  ✓ {role_name}: {route} -> {level.label}")

        if superadmin_identity:
            protected = settings.protected_role_name
            role_id = role_map.get(protected)
            if role_id is None:
                print(f"\nERROR: protected role '{protected}' does not exist")
            else:
                await role_repo.add_memberships(superadmin_identity, [role_id])
                print(f"\n✓ Identity '{superadmin_identity}' holds role '{protected}'")

        await session.commit()

    print("\nRBAC seed completed.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed default roles and grants")
    parser.add_argument(
        "--superadmin",
        metavar="IDENTITY_ID",
        help="identity provider subject to attach to the protected role",
    )
    args = parser.parse_args()
    asyncio.run(seed_rbac(args.superadmin))


if __name__ == "__main__":
    main()
