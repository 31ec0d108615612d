"""Persistence of attachments submitted with their owning entity."""
from __future__ import annotations

from typing import Any

from lease_erp.core.errors import DomainError, PreconditionError
from lease_erp.core.schema import Attachment
from lease_erp.domain import Principal
from lease_erp.infrastructure.store import LeaseRepository

from .dispatch import normalise_record

DATE_FIELDS = ("DocIssueDate", "DocExpiryDate")


def attachments_of(repository: LeaseRepository, owner_type: str, owner_id: int) -> list[dict[str, Any]]:
    rows = repository.list(
        "attachments",
        lambda row: row.get("OwnerType") == owner_type and row.get("OwnerID") == owner_id,
    )
    for row in rows:
        doc_type = repository.get("doc_types", row.get("DocTypeID"))
        row["DocTypeName"] = doc_type.get("Description") if doc_type else None
    return sorted(rows, key=lambda row: row["AttachmentID"])


def check_attachments(rows: list[dict[str, Any]]) -> None:
    errors = [
        f"Document type is required for {row.get('FileName') or row.get('DocumentName') or 'attachment'}"
        for row in rows
        if not int(row.get("DocTypeID") or 0) > 0
    ]
    if sum(1 for row in rows if row.get("IsMainImage")) > 1:
        errors.append("Only one attachment can be the main image")
    if errors:
        raise PreconditionError(errors)


def clear_main_image(
    repository: LeaseRepository, owner_type: str, owner_id: int, principal: Principal, keep: int | None = None
) -> None:
    for row in attachments_of(repository, owner_type, owner_id):
        if row.get("IsMainImage") and row["AttachmentID"] != keep:
            repository.update("attachments", row["AttachmentID"], {"IsMainImage": False}, principal)


def save_attachments(
    repository: LeaseRepository,
    owner_type: str,
    owner_id: int,
    rows: list[dict[str, Any]],
    principal: Principal,
) -> list[dict[str, Any]]:
    """Store newly staged attachments; records already persisted are skipped."""

    new_rows = [row for row in rows if row.get("isNew", True)]
    check_attachments(new_rows)
    saved: list[dict[str, Any]] = []
    for row in new_rows:
        record = normalise_record(Attachment.pick_writable(row), DATE_FIELDS)
        record["IsMainImage"] = bool(record.get("IsMainImage"))
        if record["IsMainImage"]:
            clear_main_image(repository, owner_type, owner_id, principal)
        record.update(OwnerType=owner_type, OwnerID=owner_id)
        saved.append(repository.insert("attachments", record, principal))
    return saved


def update_attachment(
    repository: LeaseRepository,
    owner_type: str,
    attachment_id: int,
    changes: dict[str, Any],
    principal: Principal,
) -> dict[str, Any]:
    current = repository.require("attachments", attachment_id)
    if current.get("OwnerType") != owner_type:
        raise DomainError(f"Attachment {attachment_id} does not belong to this {owner_type.lower()}")
    record = normalise_record(Attachment.pick_writable(changes), DATE_FIELDS)
    if "DocTypeID" in record and not int(record["DocTypeID"] or 0) > 0:
        raise PreconditionError([f"Document type is required for {current.get('FileName')}"])
    if record.get("IsMainImage"):
        clear_main_image(repository, owner_type, current["OwnerID"], principal, keep=attachment_id)
    return repository.update("attachments", attachment_id, record, principal)
