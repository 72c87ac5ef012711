"""Operator entry point for bulk provisioning.

Creates Supabase Auth identities for every profile that has no `user_id` yet
and links them back, exactly like the `/functions/bulk-create-users` endpoint.

Usage example:

    python -m backend.provisioning.cli \
        --supabase-url https://<project>.supabase.co \
        --service-role-key '...'

Environment variables (SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, PROFILES_TABLE,
INSTITUTION_EMAIL_DOMAIN) can be used instead of CLI flags. `--dry-run` lists
the profiles that would be provisioned without touching Supabase Auth.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, Sequence

from backend.identity_access.domain import DEFAULT_INSTITUTION_DOMAIN
from backend.identity_access.errors import ProfileFetchError
from backend.identity_access.identity_provider import SupabaseIdentityProvider
from backend.identity_access.profiles import SupabaseProfileStore
from backend.provisioning.job import BulkProvisioningJob, mask_email


logger = logging.getLogger("smartattend.provisioning.cli")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create auth users for profiles without a linked identity")
    parser.add_argument("--supabase-url", default=os.getenv("SUPABASE_URL"))
    parser.add_argument("--service-role-key", default=os.getenv("SUPABASE_SERVICE_ROLE_KEY"))
    parser.add_argument("--table", default=os.getenv("PROFILES_TABLE", "profiles"))
    parser.add_argument("--domain", default=os.getenv("INSTITUTION_EMAIL_DOMAIN", DEFAULT_INSTITUTION_DOMAIN))
    parser.add_argument("--dry-run", action="store_true", help="List profiles but do not create identities")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    return parser.parse_args(argv)


def build_job(args: argparse.Namespace) -> BulkProvisioningJob:
    from backend.identity_access.clients import build_service_client

    client = build_service_client(args.supabase_url, args.service_role_key)
    return BulkProvisioningJob(
        profiles=SupabaseProfileStore(client, table=args.table),
        identities=SupabaseIdentityProvider(client),
        domain=args.domain,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    args = _parse_args(argv)

    if not args.supabase_url:
        raise SystemExit("--supabase-url or SUPABASE_URL must be provided")
    if not args.service_role_key:
        raise SystemExit("--service-role-key or SUPABASE_SERVICE_ROLE_KEY must be provided")

    job = build_job(args)
    try:
        if args.dry_run:
            planned = job.plan()
            for profile, cred in planned:
                logger.info("[dry-run] Would create %s (%s) for profile %s", mask_email(cred.email), profile.role, profile.id)
            logger.info("[dry-run] %d profiles would be provisioned", len(planned))
            return 0
        report = job.run()
    except ProfileFetchError as exc:
        logger.error("Failed to fetch profiles: %s", exc.message)
        return 2

    if args.json:
        json.dump(report.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
    logger.info(
        "%s: total=%d created=%d errors=%d",
        report.message,
        report.total_profiles,
        report.created,
        report.errors,
    )
    return 1 if report.errors else 0


if __name__ == "__main__":  # pragma: no cover - manual entry point
    raise SystemExit(main())
