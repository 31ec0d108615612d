import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lease_erp.clients import FailureKind
from lease_erp.core.attachments import AttachmentStaging


def test_supplier_with_contacts_and_banks(clients):
    created = clients.suppliers.create_supplier(
        {"SupplierName": "Gulf Maintenance", "Email": "ops@gulf.example"},
        contacts=[
            {"ContactName": "Sara", "IsPrimary": True},
            {"ContactName": "Omar"},
        ],
        bank_details=[{"AccountNo": "0012", "IsDefault": True}],
    )
    assert created.ok, created.message
    assert created.get("SupplierNo").startswith("SUP-")
    supplier_id = created.get("NewSupplierID")

    moved = clients.suppliers.save_supplier_contact(supplier_id, {"ContactName": "Lina", "IsPrimary": True})
    assert moved.ok
    contacts = clients.suppliers.get_supplier_contacts(supplier_id).data
    assert [c.ContactName for c in contacts if c.IsPrimary] == ["Lina"]

    assert clients.suppliers.save_supplier_bank_details(supplier_id, {"IBAN": "AE07", "IsDefault": True}).ok
    detail = clients.suppliers.get_supplier_by_id(supplier_id).data
    assert detail.supplier.SupplierName == "Gulf Maintenance"
    assert len(detail.contacts) == 3
    assert [b.IBAN for b in detail.bank_details if b.IsDefault] == ["AE07"]

    refused = clients.suppliers.save_supplier_bank_details(supplier_id, {"AccountName": "no number"})
    assert refused.message == "Account number or IBAN is required"

    omar = next(c for c in contacts if c.ContactName == "Omar")
    assert clients.suppliers.delete_supplier_contact(supplier_id, omar.SupplierContactID).ok
    assert len(clients.suppliers.get_supplier_contacts(supplier_id).data) == 2


def test_supplier_name_and_number_rules(clients):
    assert clients.suppliers.create_supplier({"Email": "x@y"}).failure is FailureKind.VALIDATION

    assert clients.suppliers.create_supplier({"SupplierName": "A", "SupplierNo": "S-1"}).ok
    duplicate = clients.suppliers.create_supplier({"SupplierName": "B", "SupplierNo": "s-1"})
    assert duplicate.failure is FailureKind.DOMAIN
    assert duplicate.message == "Supplier number s-1 already exists"


def test_supplier_types_and_search(clients):
    created = clients.suppliers.create_supplier_type({"SupplierTypeName": "Contractor"})
    assert created.ok
    type_id = created.get("NewSupplierTypeID")
    clients.suppliers.create_supplier({"SupplierName": "Build Co", "SupplierTypeID": type_id})
    clients.suppliers.create_supplier({"SupplierName": "Paint Co"})

    found = clients.suppliers.search_suppliers({"FilterSupplierTypeID": type_id})
    assert [s.SupplierName for s in found.data] == ["Build Co"]
    assert found.data[0].SupplierTypeName == "Contractor"
    assert [t.SupplierTypeName for t in clients.suppliers.get_supplier_types().data] == ["Contractor"]


def test_property_in_use_cannot_be_deleted(clients):
    created = clients.properties.create_property({"PropertyName": "Marina Tower", "PropertyNo": "P-1"})
    assert created.ok
    property_id = created.get("NewPropertyID")
    contract = clients.contracts.create_contract(
        {"CustomerID": 1}, [{"UnitID": 1, "PropertyID": property_id, "TotalAmount": 100}]
    )
    assert contract.ok, contract.message

    result = clients.properties.delete_property(property_id)

    assert result.failure is FailureKind.DOMAIN
    assert result.message == "Cannot delete a property that is used by contracts"
    assert [p.PropertyName for p in clients.properties.search_properties({"SearchText": "marina"}).data] == [
        "Marina Tower"
    ]


def test_new_main_image_replaces_the_stored_one(clients):
    first = AttachmentStaging()
    front = first.stage("front.jpg", b"1", doc_type_id=1)
    first.set_main_image(front.AttachmentID)
    property_id = clients.properties.create_property({"PropertyName": "Villa"}, attachments=first).get(
        "NewPropertyID"
    )

    stored = clients.properties.get_property_by_id(property_id).data.attachments
    second = AttachmentStaging(stored)
    back = second.stage("back.jpg", b"2", doc_type_id=1)
    second.set_main_image(back.AttachmentID)
    assert clients.properties.update_property(property_id, {"Remark": "photos"}, attachments=second).ok

    attachments = clients.properties.get_property_by_id(property_id).data.attachments
    assert [(a.FileName, a.IsMainImage) for a in attachments] == [("front.jpg", False), ("back.jpg", True)]


def test_charge_toggle_and_usage(clients):
    created = clients.charges.create_charge({"ChargesName": "Parking", "ChargesCode": "PRK", "ChargeAmount": 250})
    charge_id = created.get("NewChargesID")

    off = clients.charges.toggle_charge_status(charge_id)
    assert off.ok
    assert off.get("IsActive") is False
    assert off.message == "Charge deactivated successfully"
    assert clients.charges.search_charges(is_active=True).data == []
    assert clients.charges.toggle_charge_status(charge_id).get("IsActive") is True

    contract = clients.contracts.create_contract(
        {"CustomerID": 1},
        [{"UnitID": 1, "PropertyID": 1, "TotalAmount": 100}],
        [{"AdditionalChargesID": charge_id}],
    )
    assert contract.ok
    charge_row = clients.contracts.get_contract_by_id(contract.get("NewContractID")).data.charges[0]
    assert charge_row.Amount == 250
    assert charge_row.ChargesName == "Parking"

    refused = clients.charges.delete_charge(charge_id)
    assert refused.message == "Cannot delete a charge that is used by contracts"
    assert clients.charges.get_charge_by_id(charge_id).data.ChargesCode == "PRK"


def test_doc_types_are_unique(clients):
    assert clients.doc_types.create_doc_type("  ").failure is FailureKind.VALIDATION
    created = clients.doc_types.create_doc_type("Title Deed")
    assert created.ok

    duplicate = clients.doc_types.create_doc_type("title deed")
    assert duplicate.message == "Document type title deed already exists"

    doc_type_id = created.get("NewDocTypeID")
    assert clients.doc_types.update_doc_type(doc_type_id, {"IsActive": False}).ok
    assert clients.doc_types.get_doc_type_by_id(doc_type_id).data.IsActive is False
    assert [d.Description for d in clients.doc_types.search_doc_types("deed").data] == ["Title Deed"]

    staging = AttachmentStaging()
    staging.stage("deed.pdf", b"%PDF", doc_type_id=doc_type_id)
    clients.properties.create_property({"PropertyName": "Plot 9"}, attachments=staging)
    in_use = clients.doc_types.delete_doc_type(doc_type_id)
    assert in_use.message == "Cannot delete a document type that is used by attachments"
