"""Bulk provisioning: link every unlinked profile to a new Supabase Auth identity.

For each profile without `user_id` the default credential is computed, an
identity is created with that credential, and the profile is linked back and
flagged for a forced password change. Each profile is handled in isolation:
a failure is recorded in the report and the batch continues.

Failure kinds per profile:
    - insufficient data: skipped, no result, not counted
    - identity creation rejected: result with the provider message
    - link update rejected: result with the update message; the identity
      already exists without a profile link (orphan) and must be reconciled
      manually, see `BatchReport.orphaned_identities()`

Re-running is safe: linked profiles are excluded by the initial fetch, so only
previously failed or skipped profiles are attempted again. Two concurrent runs
are not coordinated and may race on the same profile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import List, Optional, Tuple

from backend.identity_access.credentials import Credential, compute_credential
from backend.identity_access.domain import DEFAULT_INSTITUTION_DOMAIN, Profile
from backend.identity_access.errors import IdentityAccessError
from backend.identity_access.identity_provider import IdentityProviderProtocol
from backend.identity_access.profiles import ProfileStoreProtocol, error_message


logger = logging.getLogger("smartattend.provisioning")

COMPLETED_MESSAGE = "Bulk user creation completed"
NOTHING_TO_DO_MESSAGE = "No profiles need user creation"


@dataclass(frozen=True)
class ProvisioningResult:
    profile_id: str
    success: bool
    email: Optional[str] = None
    auth_user_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_orphan(self) -> bool:
        """Identity created but the profile link failed."""
        return not self.success and self.auth_user_id is not None

    def to_dict(self) -> dict:
        out: dict = {"profile_id": self.profile_id}
        if self.email is not None:
            out["email"] = self.email
        if self.auth_user_id is not None:
            out["auth_user_id"] = self.auth_user_id
        out["success"] = self.success
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class BatchReport:
    message: str
    total_profiles: int = 0
    created: int = 0
    errors: int = 0
    results: Tuple[ProvisioningResult, ...] = ()

    def add(self, result: Optional[ProvisioningResult]) -> "BatchReport":
        """Return a new report with `result` folded in (None = skipped profile)."""
        if result is None:
            return self
        return replace(
            self,
            created=self.created + (1 if result.success else 0),
            errors=self.errors + (0 if result.success else 1),
            results=self.results + (result,),
        )

    def orphaned_identities(self) -> List[ProvisioningResult]:
        return [r for r in self.results if r.is_orphan]

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "total_profiles": self.total_profiles,
            "created": self.created,
            "errors": self.errors,
            "results": [r.to_dict() for r in self.results],
        }


def mask_email(email: str) -> str:
    """Mask email for logs to reduce PII exposure."""
    local, _, domain = (email or "").partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"


class BulkProvisioningJob:
    """Reconcile the profile table against Supabase Auth, one profile at a time."""

    def __init__(
        self,
        *,
        profiles: ProfileStoreProtocol,
        identities: IdentityProviderProtocol,
        domain: str = DEFAULT_INSTITUTION_DOMAIN,
    ) -> None:
        self._profiles = profiles
        self._identities = identities
        self._domain = domain

    def plan(self) -> List[Tuple[Profile, Credential]]:
        """Profiles a run would attempt, with their computed credential (no writes)."""
        planned = []
        for profile in self._profiles.list_unlinked():
            cred = compute_credential(profile, self._domain)
            if cred is not None:
                planned.append((profile, cred))
        return planned

    def run(self) -> BatchReport:
        """Provision all unlinked profiles and return the aggregate report.

        Raises ProfileFetchError when the initial fetch fails; nothing is
        provisioned in that case.
        """
        profiles = self._profiles.list_unlinked()
        if not profiles:
            logger.info("No profiles need user creation")
            return BatchReport(message=NOTHING_TO_DO_MESSAGE)

        logger.info("Provisioning identities for %d unlinked profiles", len(profiles))
        initial = BatchReport(message=COMPLETED_MESSAGE, total_profiles=len(profiles))
        report = reduce(lambda acc, p: acc.add(self._provision_one(p)), profiles, initial)

        for orphan in report.orphaned_identities():
            logger.warning(
                "Orphaned identity %s for profile %s requires manual reconciliation",
                orphan.auth_user_id,
                orphan.profile_id,
            )
        logger.info(
            "Bulk user creation completed: total=%d created=%d errors=%d",
            report.total_profiles,
            report.created,
            report.errors,
        )
        return report

    def _provision_one(self, profile: Profile) -> Optional[ProvisioningResult]:
        try:
            cred = compute_credential(profile, self._domain)
            if cred is None:
                logger.info("Skipping profile %s - insufficient data", profile.id)
                return None
            return self._create_and_link(profile, cred)
        except Exception as exc:
            # Isolation boundary: an unexpected failure must not abort the batch.
            logger.error("Unexpected error for profile %s: %s", profile.id, exc.__class__.__name__)
            return ProvisioningResult(profile_id=profile.id, success=False, error=error_message(exc))

    def _create_and_link(self, profile: Profile, cred: Credential) -> ProvisioningResult:
        try:
            auth_user_id = self._identities.create_identity(
                email=cred.email,
                password=cred.password,
                email_verified=True,
                metadata={
                    "first_name": profile.first_name,
                    "last_name": profile.last_name,
                    "role": profile.role,
                },
            )
        except IdentityAccessError as exc:
            logger.error("Error creating auth user for profile %s: %s", profile.id, exc.message)
            return ProvisioningResult(profile_id=profile.id, success=False, email=cred.email, error=exc.message)

        try:
            self._profiles.update(profile.id, {"user_id": auth_user_id, "force_password_change": True})
        except IdentityAccessError as exc:
            logger.error("Error updating profile %s: %s", profile.id, exc.message)
            return ProvisioningResult(
                profile_id=profile.id,
                success=False,
                email=cred.email,
                auth_user_id=auth_user_id,
                error=exc.message,
            )

        logger.info("Created auth user for %s (%s)", mask_email(cred.email), profile.role)
        return ProvisioningResult(profile_id=profile.id, success=True, email=cred.email, auth_user_id=auth_user_id)


__all__ = [
    "BatchReport",
    "BulkProvisioningJob",
    "COMPLETED_MESSAGE",
    "NOTHING_TO_DO_MESSAGE",
    "ProvisioningResult",
    "mask_email",
]
