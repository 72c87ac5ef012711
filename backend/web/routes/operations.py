"""Operations endpoints (administrative functions invoked by operators or the admin UI)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from backend.identity_access.errors import ProfileFetchError
from backend.provisioning.job import BulkProvisioningJob
from backend.web.config import load_settings
from backend.web.routes.security import function_key_error, preflight_response, private_json
from backend.web.supabase_wiring import get_backends


logger = logging.getLogger("smartattend.web.operations")

operations_router = APIRouter(tags=["Operations"])


@operations_router.options("/functions/bulk-create-users")
async def bulk_create_users_preflight():
    return preflight_response()


@operations_router.post("/functions/bulk-create-users")
async def bulk_create_users(request: Request):
    """
    Provision Supabase Auth identities for every profile without `user_id`.

    Behavior:
        - Returns the batch report (`message`, `total_profiles`, `created`,
          `errors`, `results`) with 200 even when single profiles failed.
        - 500 when the profile list cannot be fetched or wiring fails at runtime.

    Permissions:
        `Authorization: Bearer <PROVISIONING_API_KEY>` when the key is configured.
    """
    error = function_key_error(request)
    if error:
        return error
    profiles, identities = get_backends()
    if profiles is None or identities is None:
        return private_json({"error": "backend_unavailable"}, status_code=503, cors=True)

    job = BulkProvisioningJob(
        profiles=profiles,
        identities=identities,
        domain=load_settings().institution_domain,
    )
    try:
        report = await run_in_threadpool(job.run)
    except ProfileFetchError as exc:
        logger.error("Error fetching profiles: %s", exc.message)
        return private_json({"error": "Failed to fetch profiles"}, status_code=500, cors=True)
    except Exception as exc:
        logger.error("Error in bulk-create-users: %s: %s", exc.__class__.__name__, str(exc))
        return private_json({"error": str(exc)}, status_code=500, cors=True)
    return private_json(report.to_dict(), cors=True)
