"""Data classes for family members and laid-out diagram nodes."""

from dataclasses import dataclass, fields, replace
from typing import Any

MALE = "male"
FEMALE = "female"
OTHER = "other"
GENDERS = (MALE, FEMALE, OTHER)

# Person attribute -> key used in the flat record exchanged with the store
RECORD_KEYS = {
    "id": "id",
    "name": "name",
    "gender": "gender",
    "birth_date": "birthDate",
    "address": "address",
    "parent_id": "parentId",
    "spouse_name": "spouseName",
    "is_married": "isMarried",
    "biography": "biography",
    "is_deleted": "isDeleted",
    "is_highlight": "isHighlight",
}


def _optional_id(value: Any) -> str | None:
    # Ids may arrive as numbers; an empty string means no link
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class Person:
    id: str
    name: str
    gender: str = MALE
    birth_date: str = ""  # usually YYYY-MM-DD, may be empty or free text
    address: str = ""
    parent_id: str | None = None
    spouse_name: str | None = None
    is_married: bool = False
    biography: str | None = None
    is_deleted: bool = False
    is_highlight: bool = False

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    def with_changes(self, **changes: Any) -> "Person":
        """Return a full replacement of this record with the given fields changed."""
        return replace(self, **changes)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the flat camelCase record. `parentId` is always present."""
        record = {RECORD_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}
        if record["spouseName"] is None:
            del record["spouseName"]
        if record["biography"] is None:
            del record["biography"]
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Person":
        """Build a Person from a flat record, tolerating missing optional keys."""
        if record.get("id") in (None, ""):
            raise ValueError(f"Member record without an id: {record!r}")

        gender = record.get("gender") or OTHER
        if gender not in GENDERS:
            gender = OTHER

        return cls(
            id=str(record["id"]),
            name=record.get("name") or "",
            gender=gender,
            birth_date=record.get("birthDate") or "",
            address=record.get("address") or "",
            parent_id=_optional_id(record.get("parentId")),
            spouse_name=record.get("spouseName") or None,
            is_married=bool(record.get("isMarried", False)),
            biography=record.get("biography"),
            is_deleted=bool(record.get("isDeleted", False)),
            is_highlight=bool(record.get("isHighlight", False)),
        )


@dataclass
class GraphNode:
    id: str
    x: float
    y: float
    depth: int  # 0 for a tree's true root
    person: Person

    @property
    def generation(self) -> int:
        """Generation number shown to the user (roots are generation 1)."""
        return self.depth + 1


def active_members(members: list[Person]) -> list[Person]:
    """Filter out soft-deleted members, keeping the original order."""
    return [m for m in members if m.is_active]
