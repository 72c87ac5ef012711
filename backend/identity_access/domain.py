"""
Identity domain constants and the Profile record.

Why:
- Centralize allowed roles to avoid drift between the provisioning job, the
  password gate and the web layer.
- A Profile is the application-level user record; it is distinct from the
  authentication identity held by Supabase Auth and only points to it via
  `user_id`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
STUDENT = "student"
LECTURER = "lecturer"
ADMIN = "admin"
ALLOWED_ROLES = frozenset({STUDENT, LECTURER, ADMIN})
STAFF_ROLES = frozenset({LECTURER, ADMIN})

DEFAULT_INSTITUTION_DOMAIN = "zetech.ac.ke"

# Columns requested from the profiles table; keep in sync with Profile.from_row.
PROFILE_COLUMNS = (
    "id, email, admission_number, role, first_name, last_name, user_id, force_password_change"
)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Profile:
    """Profile row as stored in the `profiles` table.

    Unknown roles are kept verbatim so callers can decide how to treat them
    (the credential policy skips them; they are never rejected on read).
    """

    id: str
    role: str
    email: Optional[str] = None
    admission_number: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    user_id: Optional[str] = None
    force_password_change: bool = False
    extra: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Profile":
        known = {
            "id",
            "role",
            "email",
            "admission_number",
            "first_name",
            "last_name",
            "user_id",
            "force_password_change",
        }
        return cls(
            id=str(row.get("id", "")),
            role=str(row.get("role") or "").strip().lower(),
            email=_clean(row.get("email")),
            admission_number=_clean(row.get("admission_number")),
            first_name=str(row.get("first_name") or ""),
            last_name=str(row.get("last_name") or ""),
            user_id=_clean(row.get("user_id")),
            force_password_change=bool(row.get("force_password_change") or False),
            extra={k: v for k, v in row.items() if k not in known},
        )

    @property
    def is_linked(self) -> bool:
        return self.user_id is not None

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name.strip(), self.last_name.strip()) if p)

    def to_public_dict(self) -> dict:
        """Shape returned to the signed-in user (no extra columns)."""
        return {
            "id": self.id,
            "email": self.email,
            "admission_number": self.admission_number,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "user_id": self.user_id,
            "force_password_change": self.force_password_change,
        }


__all__ = [
    "ADMIN",
    "ALLOWED_ROLES",
    "DEFAULT_INSTITUTION_DOMAIN",
    "LECTURER",
    "PROFILE_COLUMNS",
    "Profile",
    "STAFF_ROLES",
    "STUDENT",
]
