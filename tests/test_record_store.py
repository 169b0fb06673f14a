from __future__ import annotations

from datetime import datetime, timezone

from idverify.clients.sqlite_store import VerificationRecordStore


class FrozenClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def test_append_assigns_ids_and_strictly_increasing_timestamps(tmp_path) -> None:
    store = VerificationRecordStore(str(tmp_path / "records.db"), clock=FrozenClock())

    first = store.append(transaction_id="T1", status="SMS SENT")
    second = store.append(transaction_id="T1", status="PENDING")

    assert second.id > first.id
    assert second.timestamp > first.timestamp


def test_latest_by_transaction_prefers_newest_record(tmp_path) -> None:
    store = VerificationRecordStore(str(tmp_path / "records.db"), clock=FrozenClock())
    store.append(
        transaction_id="T1",
        status="SMS SENT",
        phone_number="+15551234",
        reference_id="R1",
    )
    store.append(transaction_id="T1", status="COMPLETED PASS")
    store.append(transaction_id="T2", status="FAILURE", error_message="boom")

    latest = store.latest_by_transaction("T1")

    assert latest is not None
    assert latest.status == "COMPLETED PASS"
    assert store.latest_by_transaction("missing") is None


def test_latest_by_reference_and_status_filters(tmp_path) -> None:
    store = VerificationRecordStore(str(tmp_path / "records.db"))
    store.append(transaction_id="T1", status="FAILURE", reference_id="R1")
    sent = store.append(transaction_id="T1", status="SMS SENT", reference_id="R1")
    store.append(transaction_id="T1", status="PENDING")

    by_status = store.latest_by_transaction_and_status("T1", "SMS SENT")
    by_reference = store.latest_by_reference("R1")

    assert by_status is not None and by_status.id == sent.id
    assert by_reference is not None and by_reference.id == sent.id


def test_records_survive_reopening_and_keep_ordering(tmp_path) -> None:
    db_path = str(tmp_path / "records.db")
    clock = FrozenClock()
    first_store = VerificationRecordStore(db_path, clock=clock)
    original = first_store.append(transaction_id="T1", status="SMS SENT")

    reopened = VerificationRecordStore(db_path, clock=clock)
    newer = reopened.append(transaction_id="T1", status="EXPIRED")

    assert reopened.get(original.id) == original
    assert newer.timestamp > original.timestamp
    assert reopened.latest_by_transaction("T1").status == "EXPIRED"
    assert [record.id for record in reopened.list_all()] == [original.id, newer.id]


def test_get_returns_none_for_unknown_id(tmp_path) -> None:
    store = VerificationRecordStore(str(tmp_path / "records.db"))

    assert store.get(42) is None
    assert store.list_all() == []
