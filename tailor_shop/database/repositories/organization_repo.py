from __future__ import annotations

from dataclasses import dataclass, field

from ...constants import COL_ORGANIZATION, ORGANIZATION_ID
from ...errors import ValidationError
from ...utils.validators import is_email, non_empty
from ..store import RecordStore

# Placeholder profile written on first read so screens always have something to show
DEFAULT_ORGANIZATION = {
    "name": "My Tailoring House",
    "phones": ["+00-000-0000000"],
    "emails": ["info@example.com"],
    "address": "Shop address",
    "logo": "",
}


@dataclass
class Organization:
    org_id: str
    name: str
    phones: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    address: str = ""
    logo: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_record(cls, rec: dict) -> "Organization":
        return cls(
            org_id=rec.get("id", ORGANIZATION_ID),
            name=rec.get("name", ""),
            phones=list(rec.get("phones") or []),
            emails=list(rec.get("emails") or []),
            address=rec.get("address", ""),
            logo=rec.get("logo") or "",
            created_at=rec.get("createdAt"),
            updated_at=rec.get("updatedAt"),
        )

    def to_record(self) -> dict:
        rec = {
            "id": self.org_id,
            "name": self.name,
            "phones": list(self.phones),
            "emails": list(self.emails),
            "address": self.address,
            "logo": self.logo,
        }
        if self.created_at:
            rec["createdAt"] = self.created_at
        return rec


class OrganizationRepo:
    """
    The single organization profile (letterhead for bills).
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def get(self) -> Organization:
        """Return the profile, creating it with defaults on first read."""
        with self.store.transaction():
            rec = self.store.get(COL_ORGANIZATION, ORGANIZATION_ID)
            if rec is None:
                rec = self.store.put(COL_ORGANIZATION, ORGANIZATION_ID, dict(DEFAULT_ORGANIZATION))
        return Organization.from_record(rec)

    @staticmethod
    def validate(name, address, phones, emails) -> tuple[list[str], list[str]]:
        """
        Drop blank phone/email entries, then check every rule.
        Returns the cleaned (phones, emails) or raises ValidationError listing all problems.
        """
        phones_n = [str(p).strip() for p in (phones or []) if non_empty(p)]
        emails_n = [str(e).strip() for e in (emails or []) if non_empty(e)]

        problems = []
        if not non_empty(name):
            problems.append("Organization name is required.")
        if not non_empty(address):
            problems.append("Address is required.")
        if not phones_n:
            problems.append("At least one phone number is required.")
        if not emails_n:
            problems.append("At least one email address is required.")
        for e in emails_n:
            if not is_email(e):
                problems.append(f"Invalid email format: {e}")
        if problems:
            raise ValidationError(problems)
        return phones_n, emails_n

    def update(
        self,
        *,
        name: str,
        address: str,
        phones: list[str],
        emails: list[str],
        logo: str | None = None,
    ) -> Organization:
        phones_n, emails_n = self.validate(name, address, phones, emails)
        with self.store.transaction():
            org = self.get()
            org.name = name.strip()
            org.address = address.strip()
            org.phones = phones_n
            org.emails = emails_n
            if logo is not None:
                org.logo = logo
            return Organization.from_record(self.store.put(COL_ORGANIZATION, ORGANIZATION_ID, org.to_record()))
