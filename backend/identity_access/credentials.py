"""
Default credential policy.

Why:
    Accounts are provisioned with a password the system itself assigns, derived
    from profile fields. The same rule decides at login time whether a user is
    still on that default and must change it. Keeping both directions in one
    module prevents the provisioning job and the login flow from drifting.

Rules:
    - student: email `<admission_number>@<domain>`, password = admission number.
    - lecturer/admin: email = profile email, password = "admin".
    - anything else, or missing fields: no credential.

Everything here is pure; no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from .domain import ADMIN, DEFAULT_INSTITUTION_DOMAIN, LECTURER, STUDENT, Profile

STAFF_DEFAULT_PASSWORD = "admin"

LOGIN_TYPES = frozenset({"admission", "id", "birth_cert", "email"})


@dataclass(frozen=True)
class Credential:
    email: str
    password: str


class CredentialRule(Protocol):
    def compute(self, profile: Profile, domain: str) -> Optional[Credential]:
        ...

    def is_default(self, profile: Profile, supplied: str) -> bool:
        ...


class StudentCredentialRule:
    """Students sign in with their admission number until they change it."""

    def compute(self, profile: Profile, domain: str) -> Optional[Credential]:
        adm = profile.admission_number
        if not adm:
            return None
        return Credential(email=f"{adm}@{domain}", password=adm)

    def is_default(self, profile: Profile, supplied: str) -> bool:
        return bool(profile.admission_number) and supplied == profile.admission_number


class StaffCredentialRule:
    """Lecturers and admins share the fixed bootstrap password."""

    def compute(self, profile: Profile, domain: str) -> Optional[Credential]:
        if not profile.email:
            return None
        return Credential(email=profile.email, password=STAFF_DEFAULT_PASSWORD)

    def is_default(self, profile: Profile, supplied: str) -> bool:
        return supplied == STAFF_DEFAULT_PASSWORD


_RULES: Dict[str, CredentialRule] = {
    STUDENT: StudentCredentialRule(),
    LECTURER: StaffCredentialRule(),
    ADMIN: StaffCredentialRule(),
}


def compute_credential(profile: Profile, domain: str = DEFAULT_INSTITUTION_DOMAIN) -> Optional[Credential]:
    """Return the default credential for `profile`, or None when data is insufficient."""
    rule = _RULES.get(profile.role)
    if rule is None:
        return None
    return rule.compute(profile, domain)


def is_default_password(profile: Profile, supplied: str) -> bool:
    """Return True if `supplied` equals the profile's default password."""
    rule = _RULES.get(profile.role)
    if rule is None or supplied is None:
        return False
    return rule.is_default(profile, supplied)


def resolve_login_email(identifier: str, login_type: str, domain: str = DEFAULT_INSTITUTION_DOMAIN) -> str:
    """Map a login form identifier to the email used by Supabase Auth.

    Behavior:
        - Identifiers containing '@' are used as typed.
        - `email` logins pass through unchanged.
        - Admission, ID and birth-certificate numbers get the institution
          domain appended, mirroring how student identities are provisioned.
    Raises ValueError on an empty identifier or an unknown login type.
    """
    if login_type not in LOGIN_TYPES:
        raise ValueError("invalid_login_type")
    ident = (identifier or "").strip()
    if not ident:
        raise ValueError("identifier_required")
    if "@" in ident or login_type == "email":
        return ident
    return f"{ident}@{domain}"


__all__ = [
    "Credential",
    "LOGIN_TYPES",
    "STAFF_DEFAULT_PASSWORD",
    "StaffCredentialRule",
    "StudentCredentialRule",
    "compute_credential",
    "is_default_password",
    "resolve_login_email",
]
