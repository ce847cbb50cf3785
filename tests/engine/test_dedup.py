from __future__ import annotations

from rental_crawler.engine import DeduplicationEngine, Inserted, Rejected, Replaced
from rental_crawler.errors import StoreError

from fakes import FlakyConnection


def test_new_listing_is_inserted_and_announced(listing_store, make_listing) -> None:
    engine = DeduplicationEngine(listing_store)
    candidate = make_listing("R1")

    decisions, links = engine.admit_all([candidate])

    [decision] = decisions
    assert isinstance(decision, Inserted)
    assert decision.record.record_id is not None
    assert links == [candidate.link]
    assert listing_store.count() == 1


def test_reprocessing_the_same_candidate_is_idempotent(listing_store, make_listing) -> None:
    engine = DeduplicationEngine(listing_store)
    engine.admit(make_listing("R1"))

    decision = engine.admit(make_listing("R1"))

    assert decision == Rejected("already stored")
    assert listing_store.count() == 1


def test_relisted_unit_replaces_previous_row_without_notification(
    listing_store, make_listing
) -> None:
    engine = DeduplicationEngine(listing_store)
    first = engine.admit(make_listing("R1"))
    assert isinstance(first, Inserted)

    decisions, links = engine.admit_all([make_listing("R9", price="19000元/月")])

    [decision] = decisions
    assert isinstance(decision, Replaced)
    assert decision.old_id == first.record.record_id
    assert links == []
    assert listing_store.count(include_deleted=True) == 1
    live = listing_store.find_one(equals={"address": "復興南路1段"})
    assert live.external_id == "R9"
    assert live.price == "19000元/月"


def test_structurally_different_listing_is_kept_alongside(listing_store, make_listing) -> None:
    engine = DeduplicationEngine(listing_store)
    engine.admit(make_listing("R1"))

    decision = engine.admit(make_listing("R2", floor="4F/5F"))

    assert isinstance(decision, Inserted)
    assert listing_store.count() == 2


def test_structural_lookup_ignores_same_external_id(listing_store, make_listing) -> None:
    engine = DeduplicationEngine(listing_store)
    engine.admit(make_listing("R1"))

    assert engine.find_structural_duplicate(make_listing("R1")) is None
    assert engine.find_structural_duplicate(make_listing("R2")).external_id == "R1"


def test_store_failure_rejects_candidate(listing_store, make_listing) -> None:
    class BrokenStore:
        def find_one(self, equals=None, not_equals=None):  # noqa: ANN001
            return None

        def insert(self, listing):  # noqa: ANN001
            raise StoreError("disk I/O error")

    engine = DeduplicationEngine(BrokenStore())

    decisions, links = engine.admit_all([make_listing("R1")])

    assert isinstance(decisions[0], Rejected)
    assert "disk I/O error" in decisions[0].reason
    assert links == []


def test_failed_replace_keeps_previous_row(listing_store, make_listing, monkeypatch) -> None:
    engine = DeduplicationEngine(listing_store)
    engine.admit(make_listing("R1"))

    def _fail(old, new):  # noqa: ANN001
        raise StoreError("database is locked")

    monkeypatch.setattr(listing_store, "replace", _fail)

    decision = engine.admit(make_listing("R2"))

    assert isinstance(decision, Rejected)
    assert listing_store.find_one(equals={"external_id": "R1"}) is not None


def test_lookup_failure_rejects_only_that_candidate(
    listing_store, make_listing, monkeypatch
) -> None:
    monkeypatch.setattr(listing_store, "_conn", FlakyConnection(listing_store._conn, 2))
    engine = DeduplicationEngine(listing_store)
    candidates = [
        make_listing("R1"),
        make_listing("R2", floor="4F/5F"),
        make_listing("R3", floor="5F/5F"),
    ]

    decisions, links = engine.admit_all(candidates)

    assert isinstance(decisions[0], Inserted)
    assert isinstance(decisions[1], Rejected)
    assert decisions[1].reason.startswith("lookup failed")
    assert isinstance(decisions[2], Inserted)
    assert links == [candidates[0].link, candidates[2].link]
    assert listing_store.count() == 2
