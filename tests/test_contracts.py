import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from lease_erp.clients import ContractClient, FailureKind
from lease_erp.core.attachments import AttachmentStaging
from lease_erp.core.lifecycle import ContractStatus

UNITS = [
    {"UnitID": 101, "PropertyID": 5, "FromDate": date(2025, 1, 1), "ToDate": date(2025, 12, 31), "TotalAmount": 12000},
    {"UnitID": 102, "PropertyID": 5, "FromDate": date(2025, 1, 1), "ToDate": date(2025, 12, 31), "TotalAmount": 6000},
]


@pytest.fixture
def make_contract(clients):
    def factory(units=UNITS, charges=(), attachments=None, **overrides):
        header = {
            "CustomerID": 42,
            "CompanyID": 1,
            "TransactionDate": date(2025, 1, 1),
            "StartDate": date(2025, 1, 1),
            "EndDate": date(2025, 12, 31),
            **overrides,
        }
        result = clients.contracts.create_contract(header, units, charges, attachments=attachments)
        assert result.ok, result.message
        return result.get("NewContractID")

    return factory


def _detail(clients, contract_id):
    result = clients.contracts.get_contract_by_id(contract_id)
    assert result.ok, result.message
    return result.data


def test_create_contract_with_units_charges_and_attachment(clients, make_contract):
    staging = AttachmentStaging()
    staged = staging.stage("lease.pdf", b"%PDF", doc_type_id=2)
    staging.set_main_image(staged.AttachmentID)

    contract_id = make_contract(
        charges=[{"AdditionalChargesID": 3, "Amount": 100, "TaxPercentage": 5}],
        attachments=staging,
    )

    detail = _detail(clients, contract_id)
    contract = detail.contract
    assert contract.ContractNo.startswith("CON-")
    assert contract.ContractStatus == "Draft"
    assert contract.ApprovalStatus == "Pending"
    assert contract.TotalAmount == 18000
    assert contract.AdditionalCharges == 105
    assert contract.GrandTotal == 18105
    assert [u.UnitID for u in detail.units] == [101, 102]
    assert detail.charges[0].TaxAmount == 5
    assert [a.FileName for a in detail.attachments] == ["lease.pdf"]
    assert detail.attachments[0].IsMainImage is True


def test_create_is_validated_locally(clients):
    result = clients.contracts.create_contract({"CompanyID": 1}, [])

    assert result.failure is FailureKind.VALIDATION
    assert result.validation_messages == [
        "Customer is required",
        "At least one unit is required",
        "Total amount must be greater than zero",
    ]


def test_unclassified_attachment_blocks_creation(clients):
    staging = AttachmentStaging()
    staging.stage("scan.png", b"png")

    result = clients.contracts.create_contract({"CustomerID": 42}, UNITS, attachments=staging)

    assert result.failure is FailureKind.VALIDATION
    assert result.validation_messages == ["Document type is required for scan.png"]
    assert clients.contracts.get_all_contracts().data == []


def test_activation_needs_approval(clients, make_contract):
    contract_id = make_contract()
    contracts = clients.contracts

    assert contracts.change_contract_status(contract_id, "Pending").ok
    refused = contracts.change_contract_status(contract_id, ContractStatus.ACTIVE)
    assert refused.failure is FailureKind.DOMAIN
    assert refused.message == "Contract must be approved before it can be activated"

    current = _detail(clients, contract_id).contract
    local = contracts.change_contract_status(contract_id, "Active", current=current)
    assert local.failure is FailureKind.VALIDATION
    assert ContractClient.allowed_status_transitions(current) == [
        ContractStatus.ACTIVE,
        ContractStatus.DRAFT,
        ContractStatus.CANCELLED,
    ]

    assert contracts.approve_contract(contract_id, "terms agreed").ok
    assert contracts.change_contract_status(contract_id, "Active", remarks="keys handed over").ok
    active = _detail(clients, contract_id).contract
    assert active.ContractStatus == "Active"
    assert active.Remarks == "keys handed over"

    assert contracts.update_contract(contract_id, {"Remarks": "x"}).message == (
        "Active approved contracts cannot be edited"
    )
    assert contracts.reset_contract_approval(contract_id).message == (
        "Approval can only be reset before the contract is activated"
    )
    assert contracts.delete_contract(contract_id).message == "Only draft or cancelled contracts can be deleted"


def test_status_adjacency_enforced_by_server(clients, make_contract):
    contract_id = make_contract(RequiresApproval=False)

    result = clients.contracts.change_contract_status(contract_id, "Completed")

    assert result.failure is FailureKind.DOMAIN
    assert result.message == "Cannot change contract status from Draft to Completed"
    assert _detail(clients, contract_id).contract.ApprovalStatus == "Not Required"


def test_child_rows_recalculate_totals(clients, make_contract):
    contract_id = make_contract(units=UNITS[:1])
    contracts = clients.contracts

    added = contracts.add_contract_unit(contract_id, {"UnitID": 103, "PropertyID": 6, "TotalAmount": 3000})
    assert added.ok
    assert added.message == "Unit added successfully"
    new_unit = added.get("NewContractUnitID")
    assert _detail(clients, contract_id).contract.TotalAmount == 15000

    assert contracts.update_contract_unit(contract_id, new_unit, {"TotalAmount": 4000}).ok
    assert _detail(clients, contract_id).contract.TotalAmount == 16000

    charge = contracts.add_contract_charge(contract_id, {"AdditionalChargesID": 1, "Amount": 200})
    assert charge.ok
    assert _detail(clients, contract_id).contract.GrandTotal == 16200
    assert contracts.remove_contract_charge(contract_id, charge.get("NewContractAdditionalChargeID")).ok

    first_unit = _detail(clients, contract_id).units[0].ContractUnitID
    assert contracts.remove_contract_unit(contract_id, new_unit).ok
    last = contracts.remove_contract_unit(contract_id, first_unit)
    assert last.message == "A contract must keep at least one unit"

    detail = _detail(clients, contract_id)
    assert detail.contract.GrandTotal == 12000
    assert detail.contract.UnitCount == 1


def test_attachment_without_document_type_is_refused(clients, make_contract):
    contract_id = make_contract()
    staged = AttachmentStaging().stage("photo.jpg", b"jpg")

    result = clients.contracts.add_contract_attachment(contract_id, staged)

    assert result.failure is FailureKind.VALIDATION
    assert result.message == "Document type is required for photo.jpg"


def test_reject_and_reset_approval(clients, make_contract):
    contract_id = make_contract()
    contracts = clients.contracts

    assert contracts.reject_contract(contract_id, " ").failure is FailureKind.VALIDATION
    assert contracts.reject_contract(contract_id, "rent too low").ok
    rejected = _detail(clients, contract_id).contract
    assert rejected.ApprovalStatus == "Rejected"
    assert rejected.RejectedBy == "accountant"

    assert contracts.reset_contract_approval(contract_id).ok
    assert [c.ContractID for c in contracts.get_pending_approval_contracts().data] == [contract_id]


def test_queries_and_statistics(clients, make_contract):
    first = make_contract()
    second = make_contract(units=[{"UnitID": 200, "PropertyID": 9, "TotalAmount": 500}], CustomerID=77)

    assert [c.ContractID for c in clients.contracts.get_contracts_by_unit(200).data] == [second]
    assert [c.ContractID for c in clients.contracts.search_contracts({"FilterCustomerID": 42}).data] == [first]

    stats = clients.contracts.get_contract_statistics()
    assert stats.ok
    assert stats.data["summary"]["TotalContracts"] == 2
    assert stats.data["summary"]["TotalValue"] == 18500
    assert {row["PropertyID"] for row in stats.data["by_property"]} == {5, 9}


def test_draft_contract_can_be_deleted(clients, make_contract):
    contract_id = make_contract()

    assert clients.contracts.delete_contract(contract_id).ok
    assert clients.contracts.get_all_contracts().data == []


def test_unreadable_current_status_is_refused_locally(clients, make_contract):
    contract_id = make_contract()
    current = _detail(clients, contract_id).contract.model_copy(update={"ContractStatus": "Archived"})

    result = clients.contracts.change_contract_status(contract_id, "Active", current=current)

    assert result.failure is FailureKind.VALIDATION
    assert result.validation_messages == ["Unknown ContractStatus: Archived"]
    assert _detail(clients, contract_id).contract.ContractStatus == "Draft"
