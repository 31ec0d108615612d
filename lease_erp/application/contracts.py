"""Lease contract modes with units, additional charges and attachments."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError
from lease_erp.core.lifecycle import (
    ApprovalStatus,
    ContractStatus,
    initial_approval_status,
    require_can_approve,
    require_can_reject,
    require_can_reset_approval,
    require_contract_transition,
)
from lease_erp.core.modes import ContractMode
from lease_erp.core.schema import Contract, ContractCharge, ContractUnit
from lease_erp.core.wire import is_truthy
from lease_erp.domain import Principal

from . import ledger
from .attachments import attachments_of, check_attachments, save_attachments, update_attachment
from .dispatch import (
    EntityHandler,
    by_id,
    contains_text,
    json_rows,
    normalise_record,
    opt_date,
    opt_id,
    opt_text,
    req_id,
    req_text,
    within_dates,
)
from .statistics import grouped_summary, totals

DATE_FIELDS = ("TransactionDate", "StartDate", "EndDate")
UNIT_DATE_FIELDS = ("FromDate", "ToDate")
OWNER = "Contract"
LOCKED_STATUSES = frozenset(
    {ContractStatus.CANCELLED, ContractStatus.COMPLETED, ContractStatus.TERMINATED}
)
CHILD_ID_FIELDS = {"contract_units": "ContractUnitID", "contract_charges": "ContractAdditionalChargeID"}
CHILD_LABELS = {"contract_units": "Unit", "contract_charges": "Additional charge"}


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def check_child_rows(units: list[dict[str, Any]], charges: list[dict[str, Any]]) -> None:
    """Reject incomplete unit or charge rows before the contract is written."""
    if any(not normalise_record(ContractUnit.pick_writable(row)).get("UnitID") for row in units):
        raise DomainError("Unit is required")
    if any(not normalise_record(ContractCharge.pick_writable(row)).get("AdditionalChargesID") for row in charges):
        raise DomainError("Additional charge is required")


class ContractHandler(EntityHandler[ContractMode]):
    modes = ContractMode

    def handle(self, mode: ContractMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case ContractMode.CREATE:
                return self._create(params, principal)
            case ContractMode.UPDATE:
                return self._update(params, principal)
            case ContractMode.GET_ALL:
                return ResponseEnvelope.success(data=self._search_rows({}))
            case ContractMode.GET_BY_ID:
                return self._get_by_id(params)
            case ContractMode.DELETE:
                return self._delete(params, principal)
            case ContractMode.SEARCH:
                return ResponseEnvelope.success(data=self._search_rows(params))
            case ContractMode.CHANGE_STATUS:
                return self._change_status(params, principal)
            case ContractMode.STATISTICS:
                return self._statistics(params)
            case ContractMode.BY_UNIT:
                unit_id = req_id(params, "UnitID", "Unit")
                contract_ids = {
                    row["ContractID"]
                    for row in self.repository.list("contract_units", lambda r: r.get("UnitID") == unit_id)
                }
                rows = [row for row in self._search_rows({}) if row["ContractID"] in contract_ids]
                return ResponseEnvelope.success(data=rows)
            case ContractMode.ADD_UNIT:
                return self._add_child(params, principal, "contract_units", ContractUnit, UNIT_DATE_FIELDS)
            case ContractMode.UPDATE_UNIT:
                return self._update_child(params, principal, "contract_units", ContractUnit, UNIT_DATE_FIELDS)
            case ContractMode.REMOVE_UNIT:
                return self._remove_child(params, principal, "contract_units", "ContractUnitID")
            case ContractMode.ADD_CHARGE:
                return self._add_child(params, principal, "contract_charges", ContractCharge, ())
            case ContractMode.UPDATE_CHARGE:
                return self._update_child(params, principal, "contract_charges", ContractCharge, ())
            case ContractMode.REMOVE_CHARGE:
                return self._remove_child(params, principal, "contract_charges", "ContractAdditionalChargeID")
            case ContractMode.ADD_ATTACHMENT:
                contract = self._editable(params)
                saved = save_attachments(
                    self.repository, OWNER, contract["ContractID"], [{**params, "isNew": True}], principal
                )
                return ResponseEnvelope.success(
                    "Attachment added successfully", NewAttachmentID=saved[0]["AttachmentID"]
                )
            case ContractMode.UPDATE_ATTACHMENT:
                self._editable(params)
                update_attachment(
                    self.repository, OWNER, req_id(params, "AttachmentID", "Attachment"), params, principal
                )
                return ResponseEnvelope.success("Attachment updated successfully")
            case ContractMode.REMOVE_ATTACHMENT:
                self._editable(params)
                attachment_id = req_id(params, "AttachmentID", "Attachment")
                self.repository.require("attachments", attachment_id)
                self.repository.soft_delete("attachments", attachment_id, principal)
                return ResponseEnvelope.success("Attachment removed successfully")
            case ContractMode.APPROVE:
                return self._approve(params, principal)
            case ContractMode.REJECT:
                return self._reject(params, principal)
            case ContractMode.RESET_APPROVAL:
                contract = self._contract(params)
                require_can_reset_approval(contract.get("ApprovalStatus"), "Contract")
                if ContractStatus.parse(contract["ContractStatus"]) not in (ContractStatus.DRAFT, ContractStatus.PENDING):
                    raise DomainError("Approval can only be reset before the contract is activated")
                self.repository.update(
                    "contracts",
                    contract["ContractID"],
                    {
                        "ApprovalStatus": ApprovalStatus.PENDING.value,
                        "ApprovedBy": None,
                        "ApprovedOn": None,
                        "ApprovalComments": None,
                        "RejectedBy": None,
                        "RejectedOn": None,
                        "RejectionReason": None,
                    },
                    principal,
                )
                return ResponseEnvelope.success("Contract approval reset to Pending")
            case ContractMode.PENDING_APPROVAL:
                rows = [
                    row
                    for row in self._search_rows(params)
                    if row.get("RequiresApproval") and row.get("ApprovalStatus") == ApprovalStatus.PENDING.value
                ]
                return ResponseEnvelope.success(data=rows)
            case _:
                assert_never(mode)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _contract(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("contracts", req_id(params, "ContractID", "Contract"))

    def _editable(self, params: dict[str, Any]) -> dict[str, Any]:
        contract = self._contract(params)
        if ContractStatus.parse(contract["ContractStatus"]) in LOCKED_STATUSES:
            raise DomainError(f"{contract['ContractStatus']} contracts cannot be modified")
        return contract

    def _children(self, table: str, contract_id: int) -> list[dict[str, Any]]:
        rows = self.repository.list(table, lambda row: row.get("ContractID") == contract_id)
        return sorted(rows, key=lambda row: row[CHILD_ID_FIELDS[table]])

    def _decorate(self, row: dict[str, Any]) -> dict[str, Any]:
        contract_id = row["ContractID"]
        row["UnitCount"] = len(self._children("contract_units", contract_id))
        row["ChargeCount"] = len(self._children("contract_charges", contract_id))
        row["AttachmentCount"] = len(attachments_of(self.repository, OWNER, contract_id))
        return row

    def _recalculate(self, contract_id: int, principal: Principal) -> None:
        units = sum(float(row.get("TotalAmount") or 0) for row in self._children("contract_units", contract_id))
        charges = sum(float(row.get("TotalAmount") or 0) for row in self._children("contract_charges", contract_id))
        self.repository.update(
            "contracts",
            contract_id,
            {
                "TotalAmount": round(units, 2),
                "AdditionalCharges": round(charges, 2),
                "GrandTotal": round(units + charges, 2),
            },
            principal,
        )

    def _insert_charge(self, contract_id: int, row: dict[str, Any], principal: Principal) -> dict[str, Any]:
        record = normalise_record(ContractCharge.pick_writable(row))
        if not record.get("AdditionalChargesID"):
            raise DomainError("Additional charge is required")
        charge = self.repository.get("charges", record["AdditionalChargesID"])
        amount = float(record.get("Amount") or (charge or {}).get("ChargeAmount") or 0)
        tax = record.get("TaxAmount")
        if tax is None:
            tax = amount * float(record.get("TaxPercentage") or 0) / 100
        record.update(
            ContractID=contract_id,
            Amount=round(amount, 2),
            TaxAmount=round(float(tax), 2),
            TotalAmount=round(float(record.get("TotalAmount") or amount + float(tax)), 2),
            ChargesName=charge.get("ChargesName") if charge else None,
        )
        return self.repository.insert("contract_charges", record, principal)

    def _insert_unit(self, contract_id: int, row: dict[str, Any], principal: Principal) -> dict[str, Any]:
        record = normalise_record(ContractUnit.pick_writable(row), UNIT_DATE_FIELDS)
        if not record.get("UnitID"):
            raise DomainError("Unit is required")
        record["ContractID"] = contract_id
        record["TotalAmount"] = round(float(record.get("TotalAmount") or 0), 2)
        return self.repository.insert("contract_units", record, principal)

    def _search_rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        customer_id = opt_id(params, "FilterCustomerID")
        company_id = opt_id(params, "FilterCompanyID")
        status = opt_text(params, "FilterContractStatus")
        approval_status = opt_text(params, "FilterApprovalStatus")
        start = opt_date(params, "FilterFromDate")
        end = opt_date(params, "FilterToDate")
        if status:
            status = ContractStatus.parse(status).value
        if approval_status:
            approval_status = ApprovalStatus.parse(approval_status).value

        def keep(row: dict[str, Any]) -> bool:
            return all((
                not customer_id or customer_id in (row.get("CustomerID"), row.get("JointCustomerID")),
                not company_id or row.get("CompanyID") == company_id,
                not status or row.get("ContractStatus") == status,
                not approval_status or row.get("ApprovalStatus") == approval_status,
                within_dates(row.get("TransactionDate"), start, end),
                contains_text(row, text, ("ContractNo", "Remarks")),
            ))

        return by_id([self._decorate(row) for row in self.repository.list("contracts", keep)], "ContractID")

    # ------------------------------------------------------------------
    # modes
    # ------------------------------------------------------------------
    def _create(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        record = normalise_record(Contract.pick_writable(params), DATE_FIELDS)
        if not record.get("CustomerID"):
            raise DomainError("Customer is required")
        units = json_rows(params, "UnitsJSON")
        charges = json_rows(params, "AdditionalChargesJSON")
        attachments = json_rows(params, "AttachmentsJSON")
        if not units:
            raise DomainError("At least one unit is required")
        check_child_rows(units, charges)

        contract_no = record.get("ContractNo")
        if contract_no:
            if self.repository.list("contracts", lambda row: row.get("ContractNo") == contract_no):
                raise ConflictError(f"Contract number {contract_no} already exists")
        else:
            contract_no = ledger.next_document_no(self.repository, "contract", "CON")
        requires_approval = is_truthy(record.get("RequiresApproval", True))
        record.update(
            ContractNo=contract_no,
            TransactionDate=record.get("TransactionDate") or date.today().isoformat(),
            ContractStatus=ContractStatus.DRAFT.value,
            RequiresApproval=requires_approval,
            ApprovalStatus=initial_approval_status(requires_approval).value,
        )
        # attachments are checked before anything is written
        check_attachments([row for row in attachments if row.get("isNew", True)])

        contract = self.repository.insert("contracts", record, principal)
        contract_id = contract["ContractID"]
        for unit in units:
            self._insert_unit(contract_id, unit, principal)
        for charge in charges:
            self._insert_charge(contract_id, charge, principal)
        save_attachments(self.repository, OWNER, contract_id, attachments, principal)
        self._recalculate(contract_id, principal)
        return ResponseEnvelope.success(
            "Contract created successfully", NewContractID=contract_id, ContractNo=contract_no
        )

    def _update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        contract = self._editable(params)
        if contract.get("ApprovalStatus") == ApprovalStatus.APPROVED.value and (
            ContractStatus.parse(contract["ContractStatus"]) is ContractStatus.ACTIVE
        ):
            raise DomainError("Active approved contracts cannot be edited")
        changes = normalise_record(Contract.pick_writable(params), DATE_FIELDS)
        for key in ("TotalAmount", "AdditionalCharges", "GrandTotal"):
            changes.pop(key, None)
        if "ContractNo" in changes and changes["ContractNo"] != contract.get("ContractNo"):
            if self.repository.list("contracts", lambda row: row.get("ContractNo") == changes["ContractNo"]):
                raise ConflictError(f"Contract number {changes['ContractNo']} already exists")
        if "RequiresApproval" in changes:
            changes["RequiresApproval"] = is_truthy(changes["RequiresApproval"])
            if contract.get("ApprovalStatus") in (ApprovalStatus.PENDING.value, ApprovalStatus.NOT_REQUIRED.value):
                changes["ApprovalStatus"] = initial_approval_status(changes["RequiresApproval"]).value

        contract_id = contract["ContractID"]
        attachments = json_rows(params, "AttachmentsJSON")
        units = json_rows(params, "UnitsJSON")
        if "UnitsJSON" in params and not units:
            raise DomainError("At least one unit is required")
        charges = json_rows(params, "AdditionalChargesJSON")
        check_child_rows(units, charges)
        check_attachments([row for row in attachments if row.get("isNew", True)])
        self.repository.update("contracts", contract_id, changes, principal)

        if "UnitsJSON" in params:
            for row in self._children("contract_units", contract_id):
                self.repository.hard_delete("contract_units", row["ContractUnitID"])
            for unit in units:
                self._insert_unit(contract_id, unit, principal)
        if "AdditionalChargesJSON" in params:
            for row in self._children("contract_charges", contract_id):
                self.repository.hard_delete("contract_charges", row["ContractAdditionalChargeID"])
            for charge in charges:
                self._insert_charge(contract_id, charge, principal)
        save_attachments(self.repository, OWNER, contract_id, attachments, principal)
        self._recalculate(contract_id, principal)
        return ResponseEnvelope.success("Contract updated successfully")

    def _get_by_id(self, params: dict[str, Any]) -> ResponseEnvelope:
        contract = self._decorate(self._contract(params))
        contract_id = contract["ContractID"]
        return ResponseEnvelope.success(
            table1=[contract],
            table2=self._children("contract_units", contract_id),
            table3=self._children("contract_charges", contract_id),
            table4=attachments_of(self.repository, OWNER, contract_id),
        )

    def _delete(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        contract = self._contract(params)
        if ContractStatus.parse(contract["ContractStatus"]) not in (ContractStatus.DRAFT, ContractStatus.CANCELLED):
            raise DomainError("Only draft or cancelled contracts can be deleted")
        if self.repository.list("invoices", lambda row: row.get("ContractID") == contract["ContractID"]):
            raise DomainError("Cannot delete a contract that has invoices")
        self.repository.soft_delete("contracts", contract["ContractID"], principal)
        return ResponseEnvelope.success("Contract deleted successfully")

    def _change_status(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        contract = self._contract(params)
        target = require_contract_transition(
            contract["ContractStatus"],
            req_text(params, "ContractStatus", "Contract status"),
            contract.get("ApprovalStatus"),
        )
        changes: dict[str, Any] = {"ContractStatus": target.value}
        remarks = opt_text(params, "Remarks")
        if remarks:
            changes["Remarks"] = remarks
        self.repository.update("contracts", contract["ContractID"], changes, principal)
        return ResponseEnvelope.success(f"Contract status changed to {target.value}")

    def _statistics(self, params: dict[str, Any]) -> ResponseEnvelope:
        rows = self._search_rows(params)
        money = {"GrandTotal": "TotalValue"}
        units = [
            unit
            for row in rows
            for unit in self._children("contract_units", row["ContractID"])
        ]
        return ResponseEnvelope.success(
            table1=grouped_summary(rows, "ContractStatus", count_as="ContractCount", sums=money),
            table2=grouped_summary(rows, "ApprovalStatus", count_as="ContractCount", sums=money),
            table3=grouped_summary(units, "PropertyID", count_as="UnitCount", sums={"TotalAmount": "TotalAmount"}),
            table4=[totals(rows, {"GrandTotal": "TotalValue", "AdditionalCharges": "TotalCharges"}, count_as="TotalContracts")],
        )

    def _add_child(self, params, principal, table, model, date_fields) -> ResponseEnvelope:
        contract = self._editable(params)
        if table == "contract_units":
            row = self._insert_unit(contract["ContractID"], params, principal)
        else:
            row = self._insert_charge(contract["ContractID"], params, principal)
        self._recalculate(contract["ContractID"], principal)
        id_field = model.id_field
        return ResponseEnvelope.success(f"{CHILD_LABELS[table]} added successfully", **{f"New{id_field}": row[id_field]})

    def _update_child(self, params, principal, table, model, date_fields) -> ResponseEnvelope:
        contract = self._editable(params)
        child_id = req_id(params, model.id_field)
        child = self.repository.require(table, child_id)
        if child.get("ContractID") != contract["ContractID"]:
            raise DomainError(f"{CHILD_LABELS[table]} {child_id} does not belong to this contract")
        changes = normalise_record(model.pick_writable(params), date_fields)
        changes.pop(model.id_field, None)
        self.repository.update(table, child_id, changes, principal)
        self._recalculate(contract["ContractID"], principal)
        return ResponseEnvelope.success(f"{CHILD_LABELS[table]} updated successfully")

    def _remove_child(self, params, principal, table, id_field) -> ResponseEnvelope:
        contract = self._editable(params)
        child_id = req_id(params, id_field)
        child = self.repository.require(table, child_id)
        if child.get("ContractID") != contract["ContractID"]:
            raise DomainError(f"Record {child_id} does not belong to this contract")
        if table == "contract_units" and len(self._children(table, contract["ContractID"])) <= 1:
            raise DomainError("A contract must keep at least one unit")
        self.repository.soft_delete(table, child_id, principal)
        self._recalculate(contract["ContractID"], principal)
        return ResponseEnvelope.success(f"{CHILD_LABELS[table]} removed successfully")

    def _approve(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        contract = self._contract(params)
        require_can_approve(contract.get("ApprovalStatus"), "Contract")
        self.repository.update(
            "contracts",
            contract["ContractID"],
            {
                "ApprovalStatus": ApprovalStatus.APPROVED.value,
                "ApprovedBy": principal.user_name,
                "ApprovedOn": _now(),
                "ApprovalComments": opt_text(params, "ApprovalComments"),
            },
            principal,
        )
        return ResponseEnvelope.success("Contract approved successfully")

    def _reject(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        contract = self._contract(params)
        reason = opt_text(params, "RejectionReason")
        require_can_reject(contract.get("ApprovalStatus"), "Contract", reason)
        self.repository.update(
            "contracts",
            contract["ContractID"],
            {
                "ApprovalStatus": ApprovalStatus.REJECTED.value,
                "RejectedBy": principal.user_name,
                "RejectedOn": _now(),
                "RejectionReason": reason,
            },
            principal,
        )
        return ResponseEnvelope.success("Contract rejected")
