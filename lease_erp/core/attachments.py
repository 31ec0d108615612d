"""Local staging of attachments before the owning entity is saved.

Staged files carry negative temporary IDs and ``isNew=True``; they only
become persistent (positive IDs) once the owner's create/update succeeds.
"""
from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Any, Iterable

from lease_erp.core.schema import Attachment
from lease_erp.core.wire import format_date, parse_date

DOC_TYPE_REQUIRED = "Document type is required for {name}"


class AttachmentStaging:
    """Attachment set of one entity: persisted records plus staged uploads."""

    def __init__(self, persisted: Iterable[Attachment | dict[str, Any]] = ()) -> None:
        self._items: list[Attachment] = []
        self._next_temp_id = -1
        self.load(persisted)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _find(self, attachment_id: int) -> int:
        for index, item in enumerate(self._items):
            if item.AttachmentID == attachment_id:
                return index
        raise KeyError(attachment_id)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    @property
    def items(self) -> list[Attachment]:
        return list(self._items)

    def load(self, persisted: Iterable[Attachment | dict[str, Any]]) -> None:
        for record in persisted:
            item = record if isinstance(record, Attachment) else Attachment.model_validate(record)
            self._items.append(item.model_copy(update={"isNew": False}))

    def stage(
        self,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        *,
        doc_type_id: int = 0,
        document_name: str | None = None,
        issue_date: Any = None,
        expiry_date: Any = None,
        remarks: str | None = None,
    ) -> Attachment:
        content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        attachment = Attachment(
            AttachmentID=self._next_temp_id,
            DocTypeID=doc_type_id,
            DocumentName=document_name or Path(file_name).stem,
            FileName=file_name,
            FileContent=base64.b64encode(content).decode("ascii"),
            FileContentType=content_type,
            FileSize=len(content),
            DocIssueDate=format_date(issue_date),
            DocExpiryDate=format_date(expiry_date),
            IsMainImage=False,
            Remarks=remarks,
            isNew=True,
        )
        self._next_temp_id -= 1
        self._items.append(attachment)
        return attachment

    def stage_file(self, path: Path, **kwargs: Any) -> Attachment:
        return self.stage(path.name, path.read_bytes(), **kwargs)

    def classify(
        self,
        attachment_id: int,
        doc_type_id: int,
        *,
        document_name: str | None = None,
        issue_date: Any = None,
        expiry_date: Any = None,
    ) -> Attachment:
        index = self._find(attachment_id)
        updates: dict[str, Any] = {"DocTypeID": doc_type_id}
        if document_name is not None:
            updates["DocumentName"] = document_name
        if issue_date is not None:
            updates["DocIssueDate"] = parse_date(issue_date)
        if expiry_date is not None:
            updates["DocExpiryDate"] = parse_date(expiry_date)
        self._items[index] = self._items[index].model_copy(update=updates)
        return self._items[index]

    def set_main_image(self, attachment_id: int) -> None:
        """Flag exactly one attachment as the main image."""

        self._find(attachment_id)
        self._items = [
            item.model_copy(update={"IsMainImage": item.AttachmentID == attachment_id})
            for item in self._items
        ]

    def main_image(self) -> Attachment | None:
        return next((item for item in self._items if item.IsMainImage), None)

    def remove(self, attachment_id: int) -> Attachment:
        return self._items.pop(self._find(attachment_id))

    def pending(self) -> list[Attachment]:
        return [item for item in self._items if item.isNew]

    def prepare_submission(self) -> tuple[list[dict[str, Any]], list[str]]:
        """Return the wire payload of new classified files and blocking errors.

        Unclassified staged files are left out of the payload and reported
        instead, so callers can refuse the save rather than lose them.
        """

        payload: list[dict[str, Any]] = []
        errors: list[str] = []
        for item in self.pending():
            if item.DocTypeID and item.DocTypeID > 0:
                body = item.writable_payload()
                body["isNew"] = True
                payload.append(body)
            else:
                errors.append(DOC_TYPE_REQUIRED.format(name=item.FileName or item.DocumentName))
        return payload, errors


__all__ = ["AttachmentStaging", "DOC_TYPE_REQUIRED"]
