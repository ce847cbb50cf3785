"""Listing record shared by the extractor, dedup engine and store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace

# Columns compared when deciding whether two rows describe the same unit.
STRUCTURAL_FIELDS = ("property_type", "layout", "floor", "area", "address")

LISTING_FIELDS = (
    "external_id",
    "link",
    "title",
    "property_type",
    "layout",
    "size",
    "floor",
    "area",
    "address",
    "price",
)


@dataclass(slots=True)
class Listing:
    """One rental unit observed on a search page.

    Missing fields stay as empty strings so structural comparison is plain
    string equality.
    """

    external_id: str = ""
    link: str = ""
    title: str = ""
    property_type: str = ""
    layout: str = ""
    size: str = ""
    floor: str = ""
    area: str = ""
    address: str = ""
    price: str = ""
    record_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    def structural_key(self) -> tuple[str, ...]:
        return tuple(getattr(self, name) for name in STRUCTURAL_FIELDS)

    def fields(self) -> dict[str, str]:
        """Return the extracted fields without store metadata."""

        data = asdict(self)
        return {name: data[name] for name in LISTING_FIELDS}

    def as_stored(self, record_id: int, timestamp: str) -> "Listing":
        return replace(
            self,
            record_id=record_id,
            created_at=timestamp,
            updated_at=timestamp,
            deleted_at=None,
        )


__all__ = ["LISTING_FIELDS", "Listing", "STRUCTURAL_FIELDS"]
