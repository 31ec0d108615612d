"""Lease contract client."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from lease_erp.core.attachments import AttachmentStaging
from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ValidationError
from lease_erp.core.lifecycle import (
    CLEARED_FOR_POSTING,
    ApprovalStatus,
    ContractStatus,
    allowed_contract_transitions,
    can_change_contract_status,
)
from lease_erp.core.modes import ContractMode
from lease_erp.core.schema import Attachment, Contract, ContractCharge, ContractDetail, ContractUnit
from lease_erp.core.validation import validate_contract_data

from .base import DispatchClient, payload_of, rows_of
from .results import DispatchResult

Mode = ContractMode


def _detail(response: ResponseEnvelope) -> ContractDetail | None:
    rows = response.table(1)
    if not rows:
        return None
    return ContractDetail(
        contract=Contract.model_validate(rows[0]),
        units=[ContractUnit.model_validate(row) for row in response.table(2)],
        charges=[ContractCharge.model_validate(row) for row in response.table(3)],
        attachments=[Attachment.model_validate(row) for row in response.table(4)],
    )


def _statistics(response: ResponseEnvelope) -> dict[str, Any]:
    summary = response.table(4)
    return {
        "by_status": response.table(1),
        "by_approval": response.table(2),
        "by_property": response.table(3),
        "summary": summary[0] if summary else {},
    }


def _rows(model, values: Iterable[Any] | None) -> list[dict[str, Any]]:
    return [payload_of(model, value) for value in values or ()]


class ContractClient(DispatchClient):
    modes = ContractMode

    @staticmethod
    def allowed_status_transitions(contract: Contract) -> list[ContractStatus]:
        return allowed_contract_transitions(contract.ContractStatus)

    def _attachments(self, staging: AttachmentStaging | None) -> tuple[list[dict[str, Any]], list[str]]:
        if staging is None:
            return [], []
        return staging.prepare_submission()

    def create_contract(
        self,
        contract: Contract | Mapping[str, Any],
        units: Iterable[ContractUnit | Mapping[str, Any]],
        charges: Iterable[ContractCharge | Mapping[str, Any]] = (),
        *,
        attachments: AttachmentStaging | None = None,
    ) -> DispatchResult[None]:
        payload = payload_of(Contract, contract)
        unit_rows = _rows(ContractUnit, units)
        charge_rows = _rows(ContractCharge, charges)
        total = payload.get("TotalAmount") or sum(float(row.get("TotalAmount") or 0) for row in unit_rows)
        report = validate_contract_data({**payload, "TotalAmount": total}, unit_rows)
        attachment_rows, attachment_errors = self._attachments(attachments)
        errors = report.errors + attachment_errors
        if errors:
            return self.invalid(errors)
        return self.call(
            Mode.CREATE,
            {
                **payload,
                "UnitsJSON": unit_rows,
                "AdditionalChargesJSON": charge_rows,
                "AttachmentsJSON": attachment_rows,
            },
            action="create contract",
            mutation=True,
        )

    def update_contract(
        self,
        contract_id: int,
        changes: Contract | Mapping[str, Any],
        *,
        units: Iterable[ContractUnit | Mapping[str, Any]] | None = None,
        charges: Iterable[ContractCharge | Mapping[str, Any]] | None = None,
        attachments: AttachmentStaging | None = None,
    ) -> DispatchResult[None]:
        """Update the header; ``units``/``charges`` given replace the stored sets."""

        attachment_rows, attachment_errors = self._attachments(attachments)
        if attachment_errors:
            return self.invalid(attachment_errors)
        parameters: dict[str, Any] = {"ContractID": contract_id, **payload_of(Contract, changes)}
        if units is not None:
            unit_rows = _rows(ContractUnit, units)
            if not unit_rows:
                return self.invalid("At least one unit is required")
            parameters["UnitsJSON"] = unit_rows
        if charges is not None:
            parameters["AdditionalChargesJSON"] = _rows(ContractCharge, charges)
        if attachment_rows:
            parameters["AttachmentsJSON"] = attachment_rows
        return self.call(Mode.UPDATE, parameters, action="update contract", mutation=True)

    def get_all_contracts(self) -> DispatchResult[list[Contract]]:
        return self.call(Mode.GET_ALL, action="load contracts", parse=rows_of(Contract))

    def get_contract_by_id(self, contract_id: int) -> DispatchResult[ContractDetail]:
        return self.call(Mode.GET_BY_ID, {"ContractID": contract_id}, action="load contract", parse=_detail)

    def delete_contract(self, contract_id: int) -> DispatchResult[None]:
        return self.call(Mode.DELETE, {"ContractID": contract_id}, action="delete contract", mutation=True)

    def search_contracts(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Contract]]:
        return self.call(Mode.SEARCH, dict(filters or {}), action="search contracts", parse=rows_of(Contract))

    def change_contract_status(
        self,
        contract_id: int,
        status: ContractStatus | str,
        *,
        current: Contract | None = None,
        remarks: str | None = None,
    ) -> DispatchResult[None]:
        try:
            target = ContractStatus.parse(status)
            allowed = current is None or can_change_contract_status(current.ContractStatus, target)
            unapproved = (
                current is not None
                and target is ContractStatus.ACTIVE
                and bool(current.ApprovalStatus)
                and ApprovalStatus.parse(current.ApprovalStatus) not in CLEARED_FOR_POSTING
            )
        except ValidationError as exc:
            return self.invalid(exc.messages)
        if not allowed:
            return self.invalid(f"Cannot change contract status from {current.ContractStatus} to {target.value}")
        if unapproved:
            return self.invalid("Contract must be approved before it can be activated")
        return self.call(
            Mode.CHANGE_STATUS,
            {"ContractID": contract_id, "ContractStatus": target.value, "Remarks": remarks},
            action="change contract status",
            mutation=True,
        )

    def get_contract_statistics(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.STATISTICS, dict(filters or {}), action="load contract statistics", parse=_statistics
        )

    def get_contracts_by_unit(self, unit_id: int) -> DispatchResult[list[Contract]]:
        return self.call(Mode.BY_UNIT, {"UnitID": unit_id}, action="load unit contracts", parse=rows_of(Contract))

    # ------------------------------------------------------------------
    # child rows
    # ------------------------------------------------------------------
    def add_contract_unit(self, contract_id: int, unit: ContractUnit | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            Mode.ADD_UNIT,
            {"ContractID": contract_id, **payload_of(ContractUnit, unit)},
            action="add unit",
            mutation=True,
        )

    def update_contract_unit(
        self, contract_id: int, contract_unit_id: int, changes: ContractUnit | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            Mode.UPDATE_UNIT,
            {"ContractID": contract_id, "ContractUnitID": contract_unit_id, **payload_of(ContractUnit, changes)},
            action="update unit",
            mutation=True,
        )

    def remove_contract_unit(self, contract_id: int, contract_unit_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.REMOVE_UNIT,
            {"ContractID": contract_id, "ContractUnitID": contract_unit_id},
            action="remove unit",
            mutation=True,
        )

    def add_contract_charge(
        self, contract_id: int, charge: ContractCharge | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            Mode.ADD_CHARGE,
            {"ContractID": contract_id, **payload_of(ContractCharge, charge)},
            action="add charge",
            mutation=True,
        )

    def update_contract_charge(
        self, contract_id: int, charge_id: int, changes: ContractCharge | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            Mode.UPDATE_CHARGE,
            {
                "ContractID": contract_id,
                "ContractAdditionalChargeID": charge_id,
                **payload_of(ContractCharge, changes),
            },
            action="update charge",
            mutation=True,
        )

    def remove_contract_charge(self, contract_id: int, charge_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.REMOVE_CHARGE,
            {"ContractID": contract_id, "ContractAdditionalChargeID": charge_id},
            action="remove charge",
            mutation=True,
        )

    def add_contract_attachment(self, contract_id: int, attachment: Attachment) -> DispatchResult[None]:
        if not attachment.DocTypeID or attachment.DocTypeID <= 0:
            return self.invalid(f"Document type is required for {attachment.FileName or attachment.DocumentName}")
        return self.call(
            Mode.ADD_ATTACHMENT,
            {"ContractID": contract_id, **attachment.writable_payload()},
            action="add attachment",
            mutation=True,
        )

    def update_contract_attachment(
        self, contract_id: int, attachment_id: int, changes: Attachment | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            Mode.UPDATE_ATTACHMENT,
            {"ContractID": contract_id, "AttachmentID": attachment_id, **payload_of(Attachment, changes)},
            action="update attachment",
            mutation=True,
        )

    def remove_contract_attachment(self, contract_id: int, attachment_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.REMOVE_ATTACHMENT,
            {"ContractID": contract_id, "AttachmentID": attachment_id},
            action="remove attachment",
            mutation=True,
        )

    # ------------------------------------------------------------------
    # approval
    # ------------------------------------------------------------------
    def approve_contract(self, contract_id: int, comments: str | None = None) -> DispatchResult[None]:
        return self.call(
            Mode.APPROVE,
            {"ContractID": contract_id, "ApprovalComments": comments},
            action="approve contract",
            mutation=True,
        )

    def reject_contract(self, contract_id: int, reason: str | None) -> DispatchResult[None]:
        if not reason or not reason.strip():
            return self.invalid("Rejection reason is required")
        return self.call(
            Mode.REJECT,
            {"ContractID": contract_id, "RejectionReason": reason.strip()},
            action="reject contract",
            mutation=True,
        )

    def reset_contract_approval(self, contract_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.RESET_APPROVAL, {"ContractID": contract_id}, action="reset contract approval", mutation=True
        )

    def get_pending_approval_contracts(
        self, filters: Mapping[str, Any] | None = None
    ) -> DispatchResult[list[Contract]]:
        return self.call(
            Mode.PENDING_APPROVAL, dict(filters or {}), action="load pending contracts", parse=rows_of(Contract)
        )
