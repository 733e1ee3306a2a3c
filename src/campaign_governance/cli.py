"""Command line tools for inspecting governance state.

Usage:
    campaign-governance permissions [--role ROLE_ID ...] [--tier TIER_ID ...]
    campaign-governance history RESOURCE_ID
    campaign-governance verify-chain RESOURCE_ID
    campaign-governance reconcile [--limit N]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from campaign_governance.app import GovernanceServices, create_services, load_catalog
from campaign_governance.core.config import Settings
from campaign_governance.core.types import Actor
from campaign_governance.permissions.model import PermissionModel


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campaign-governance",
        description="Inspect campaign governance permissions and audit trails.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    perms = sub.add_parser("permissions", help="Show the catalog or resolve an assignment.")
    perms.add_argument("--role", action="append", default=[], help="Role id (repeatable).")
    perms.add_argument("--tier", action="append", default=[], help="Tier id (repeatable).")

    history = sub.add_parser("history", help="Print a resource's audit trail.")
    history.add_argument("resource_id")

    verify = sub.add_parser("verify-chain", help="Verify a resource's audit chain.")
    verify.add_argument("resource_id")

    reconcile = sub.add_parser("reconcile", help="Re-apply decided reviews to stale campaigns.")
    reconcile.add_argument("--limit", type=int, default=100)

    return parser


def show_permissions(model: PermissionModel, roles: list[str], tiers: list[str]) -> int:
    if not roles and not tiers:
        for permission in model.catalog.all_permissions():
            description = model.catalog.describe(permission) or ""
            print(f"{permission:<18} {description}")
        return 0

    actor = Actor(actor_id="cli", role_ids=tuple(roles), tier_ids=tuple(tiers))
    for permission in sorted(model.resolve_permissions(actor)):
        print(permission)
    return 0


async def show_history(services: GovernanceServices, resource_id: str) -> int:
    entries = await services.audit_logger.list_by_resource(resource_id)
    if not entries:
        print(f"No audit entries for {resource_id}.")
        return 0
    for entry in entries:
        print(
            f"#{entry.sequence:<4} {entry.timestamp}  {entry.action:<28} "
            f"{entry.actor_id:<20} {entry.hash[:16]}"
        )
    return 0


async def verify_chain(services: GovernanceServices, resource_id: str) -> int:
    result = await services.audit_logger.verify_chain(resource_id)
    if result.valid:
        print(f"VALID: {result.entries_checked} entries verified for {resource_id}.")
        return 0
    print(
        f"INVALID: chain for {resource_id} broken at entry "
        f"{result.failed_entry_id} ({result.reason})."
    )
    return 1


async def run_reconcile(services: GovernanceServices, limit: int) -> int:
    report = await services.reconciler.sweep(limit=limit)
    print(
        f"Examined {report.examined}, repaired {report.repaired}, "
        f"skipped {report.skipped}, errors {report.errors}."
    )
    return 1 if report.errors else 0


async def _run_async(args: argparse.Namespace, services: GovernanceServices) -> int:
    try:
        if services.db is not None:
            await services.db.create_all()
        if args.command == "history":
            return await show_history(services, args.resource_id)
        if args.command == "verify-chain":
            return await verify_chain(services, args.resource_id)
        return await run_reconcile(services, args.limit)
    finally:
        await services.close()


def main(
    argv: Sequence[str] | None = None,
    services: GovernanceServices | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    settings = services.settings if services else Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "permissions":
        model = services.permissions if services else PermissionModel(load_catalog(settings))
        return show_permissions(model, args.role, args.tier)

    if services is None:
        services = create_services(settings)
    return asyncio.run(_run_async(args, services))


if __name__ == "__main__":
    sys.exit(main())
