"""Decide whether a freshly extracted listing is new, a relist, or already known."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

import structlog

from ..errors import DuplicateListingError, StoreError
from ..records import STRUCTURAL_FIELDS, Listing

if TYPE_CHECKING:
    from ..infra.storage import ListingStore


@dataclass(frozen=True)
class Inserted:
    record: Listing

    @property
    def is_new(self) -> bool:
        return True


@dataclass(frozen=True)
class Replaced:
    """A stored row with the same structure but another id was purged."""

    old_id: int
    record: Listing

    @property
    def is_new(self) -> bool:
        # Relisted units are stored again but never announced.
        return False


@dataclass(frozen=True)
class Rejected:
    reason: str

    @property
    def is_new(self) -> bool:
        return False


Decision = Union[Inserted, Replaced, Rejected]


class DeduplicationEngine:
    """Reconcile candidates against the listing store, one at a time."""

    def __init__(self, store: "ListingStore", logger: structlog.BoundLogger | None = None) -> None:
        self.store = store
        self.logger = logger or structlog.get_logger("rental_crawler.dedup")

    def find_structural_duplicate(self, candidate: Listing) -> Listing | None:
        equals = {name: getattr(candidate, name) for name in STRUCTURAL_FIELDS}
        return self.store.find_one(
            equals=equals, not_equals={"external_id": candidate.external_id}
        )

    def admit(self, candidate: Listing) -> Decision:
        try:
            previous = self.find_structural_duplicate(candidate)
        except StoreError as exc:
            self.logger.warning(
                "listing_lookup_failed", external_id=candidate.external_id, error=str(exc)
            )
            return Rejected(f"lookup failed: {exc}")
        if previous is not None:
            try:
                record = self.store.replace(previous, candidate)
            except StoreError as exc:
                self.logger.warning(
                    "listing_replace_failed",
                    external_id=candidate.external_id,
                    previous_id=previous.external_id,
                    error=str(exc),
                )
                return Rejected(f"replace failed: {exc}")
            self.logger.info(
                "listing_relisted",
                external_id=candidate.external_id,
                previous_id=previous.external_id,
                link=candidate.link,
            )
            return Replaced(old_id=int(previous.record_id), record=record)

        try:
            record = self.store.insert(candidate)
        except DuplicateListingError:
            self.logger.debug("listing_already_stored", external_id=candidate.external_id)
            return Rejected("already stored")
        except StoreError as exc:
            self.logger.warning(
                "listing_insert_failed", external_id=candidate.external_id, error=str(exc)
            )
            return Rejected(f"insert failed: {exc}")
        self.logger.info("listing_inserted", external_id=candidate.external_id, link=candidate.link)
        return Inserted(record)

    def admit_all(self, candidates: list[Listing]) -> tuple[list[Decision], list[str]]:
        """Admit candidates in order and collect the links worth announcing."""

        decisions: list[Decision] = []
        new_links: list[str] = []
        for candidate in candidates:
            decision = self.admit(candidate)
            decisions.append(decision)
            if decision.is_new:
                new_links.append(candidate.link)
        return decisions, new_links


__all__ = ["Decision", "DeduplicationEngine", "Inserted", "Rejected", "Replaced"]
