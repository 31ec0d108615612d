import base64
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from lease_erp.clients import DispatchResult, FailureKind, ListViewState, ViewSession
from lease_erp.core.attachments import AttachmentStaging


def test_staged_files_get_negative_ids_and_are_pending():
    staging = AttachmentStaging([{"AttachmentID": 11, "DocTypeID": 2, "FileName": "lease.pdf"}])

    first = staging.stage("id-card.png", b"\x89PNG")
    second = staging.stage("deed.pdf", b"%PDF")

    assert (first.AttachmentID, second.AttachmentID) == (-1, -2)
    assert first.FileContentType == "image/png"
    assert base64.b64decode(first.FileContent) == b"\x89PNG"
    assert [item.AttachmentID for item in staging.pending()] == [-1, -2]
    assert [item.AttachmentID for item in staging.items] == [11, -1, -2]


def test_unclassified_files_block_submission():
    staging = AttachmentStaging()
    staging.stage("deed.pdf", b"%PDF")
    classified = staging.stage("photo.jpg", b"jpg")
    staging.classify(classified.AttachmentID, 4, expiry_date="2026-01-31")

    payload, errors = staging.prepare_submission()

    assert errors == ["Document type is required for deed.pdf"]
    assert len(payload) == 1
    assert payload[0]["DocTypeID"] == 4
    assert payload[0]["isNew"] is True
    assert payload[0]["DocExpiryDate"] == "2026-01-31"
    assert staging.items[1].DocExpiryDate == date(2026, 1, 31)


def test_persisted_attachments_are_not_resubmitted():
    staging = AttachmentStaging([{"AttachmentID": 3, "DocTypeID": 1, "FileName": "old.pdf", "isNew": True}])

    payload, errors = staging.prepare_submission()

    assert payload == [] and errors == []


def test_only_one_main_image():
    staging = AttachmentStaging([{"AttachmentID": 1, "DocTypeID": 1, "IsMainImage": True}])
    staged = staging.stage("front.jpg", b"img", doc_type_id=1)

    staging.set_main_image(staged.AttachmentID)

    assert staging.main_image().AttachmentID == staged.AttachmentID
    assert sum(item.IsMainImage for item in staging.items) == 1
    with pytest.raises(KeyError):
        staging.set_main_image(99)


def test_stage_file_reads_from_disk(tmp_path):
    path = tmp_path / "contract.pdf"
    path.write_bytes(b"%PDF-1.7")

    staged = AttachmentStaging().stage_file(path, doc_type_id=3)

    assert staged.FileName == "contract.pdf"
    assert staged.DocumentName == "contract"
    assert staged.FileSize == 8


def test_removed_staged_file_is_not_sent():
    staging = AttachmentStaging()
    staged = staging.stage("a.pdf", b"a", doc_type_id=1)
    staging.remove(staged.AttachmentID)

    assert staging.prepare_submission() == ([], [])


def test_stale_fetch_is_dropped_after_navigation():
    view: ListViewState[dict] = ListViewState()
    token = view.session.begin()
    view.session.navigate()

    applied = view.apply_fetch(DispatchResult.succeeded([{"ReceiptNo": "REC-1"}]), token)

    assert applied is False
    assert view.rows == []


def test_latest_fetch_wins():
    view: ListViewState[dict] = ListViewState(session=ViewSession())
    token = view.session.begin()

    assert view.apply_fetch(DispatchResult.succeeded([{"id": 1}]), token)
    assert view.apply_fetch(DispatchResult.succeeded([{"id": 2}], "reloaded"), token)
    assert view.rows == [{"id": 2}]
    assert view.message == "reloaded"


def test_failed_fetch_keeps_rows_and_records_message():
    view: ListViewState[dict] = ListViewState(rows=[{"id": 1}])
    token = view.session.begin()

    failed = DispatchResult.failed(FailureKind.TRANSPORT, "Failed to load receipts. Please try again.")
    assert not view.apply_fetch(failed, token)
    assert view.rows == [{"id": 1}]
    assert view.message.startswith("Failed to load receipts")


def test_mutation_applies_reducer_only_on_success():
    view: ListViewState[dict] = ListViewState(rows=[{"id": 1}, {"id": 2}])
    token = view.session.begin()

    def drop_first(rows):
        return rows[1:]

    refused = DispatchResult.failed(FailureKind.DOMAIN, "Cannot delete a posted receipt")
    assert not view.apply_mutation(refused, token, drop_first)
    assert len(view.rows) == 2

    assert view.apply_mutation(DispatchResult.succeeded(message="deleted"), token, drop_first)
    assert view.rows == [{"id": 2}]

    stale = view.session.begin()
    view.session.navigate()
    assert not view.apply_mutation(DispatchResult.succeeded(), stale, drop_first)
    assert view.rows == [{"id": 2}]


def test_result_map_preserves_failures():
    failed = DispatchResult.failed(FailureKind.PRECONDITION, "no", ["no"], CanClose=False)
    mapped = failed.map(len)

    assert mapped.failure is FailureKind.PRECONDITION
    assert mapped.get("CanClose") is False
    assert DispatchResult.succeeded([1, 2]).map(len).data == 2
