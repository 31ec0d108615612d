"""Master data clients: suppliers, properties, additional charges, document types."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from lease_erp.core.attachments import AttachmentStaging
from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.modes import ChargeMode, DocTypeMode, PropertyMode, SupplierMode
from lease_erp.core.schema import (
    Attachment,
    Charge,
    DocType,
    Property,
    PropertyDetail,
    Supplier,
    SupplierBankDetail,
    SupplierContact,
    SupplierDetail,
    SupplierType,
)

from .base import DispatchClient, one_of, payload_of, rows_of
from .results import DispatchResult


def _supplier_detail(response: ResponseEnvelope) -> SupplierDetail | None:
    rows = response.table(1)
    if not rows:
        return None
    return SupplierDetail(
        supplier=Supplier.model_validate(rows[0]),
        contacts=[SupplierContact.model_validate(row) for row in response.table(2)],
        bank_details=[SupplierBankDetail.model_validate(row) for row in response.table(3)],
        attachments=[Attachment.model_validate(row) for row in response.table(4)],
    )


def _property_detail(response: ResponseEnvelope) -> PropertyDetail | None:
    rows = response.table(1)
    if not rows:
        return None
    return PropertyDetail(
        property=Property.model_validate(rows[0]),
        attachments=[Attachment.model_validate(row) for row in response.table(2)],
    )


def _submission(staging: AttachmentStaging | None) -> tuple[list[dict[str, Any]], list[str]]:
    if staging is None:
        return [], []
    return staging.prepare_submission()


# ----------------------------------------------------------------------
# suppliers
# ----------------------------------------------------------------------
class SupplierClient(DispatchClient):
    modes = SupplierMode

    def create_supplier(
        self,
        supplier: Supplier | Mapping[str, Any],
        *,
        contacts: Iterable[SupplierContact | Mapping[str, Any]] = (),
        bank_details: Iterable[SupplierBankDetail | Mapping[str, Any]] = (),
        attachments: AttachmentStaging | None = None,
    ) -> DispatchResult[None]:
        payload = payload_of(Supplier, supplier)
        if not payload.get("SupplierName"):
            return self.invalid("Supplier name is required")
        attachment_rows, errors = _submission(attachments)
        if errors:
            return self.invalid(errors)
        return self.call(
            SupplierMode.CREATE,
            {
                **payload,
                "ContactsJSON": [payload_of(SupplierContact, row) for row in contacts],
                "BankDetailsJSON": [payload_of(SupplierBankDetail, row) for row in bank_details],
                "AttachmentsJSON": attachment_rows,
            },
            action="create supplier",
            mutation=True,
        )

    def update_supplier(
        self,
        supplier_id: int,
        changes: Supplier | Mapping[str, Any],
        *,
        attachments: AttachmentStaging | None = None,
    ) -> DispatchResult[None]:
        attachment_rows, errors = _submission(attachments)
        if errors:
            return self.invalid(errors)
        return self.call(
            SupplierMode.UPDATE,
            {"SupplierID": supplier_id, **payload_of(Supplier, changes), "AttachmentsJSON": attachment_rows or None},
            action="update supplier",
            mutation=True,
        )

    def get_all_suppliers(self) -> DispatchResult[list[Supplier]]:
        return self.call(SupplierMode.GET_ALL, action="load suppliers", parse=rows_of(Supplier))

    def get_supplier_by_id(self, supplier_id: int) -> DispatchResult[SupplierDetail]:
        return self.call(
            SupplierMode.GET_BY_ID, {"SupplierID": supplier_id}, action="load supplier", parse=_supplier_detail
        )

    def delete_supplier(self, supplier_id: int) -> DispatchResult[None]:
        return self.call(SupplierMode.DELETE, {"SupplierID": supplier_id}, action="delete supplier", mutation=True)

    def search_suppliers(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Supplier]]:
        return self.call(SupplierMode.SEARCH, dict(filters or {}), action="search suppliers", parse=rows_of(Supplier))

    def save_supplier_contact(
        self, supplier_id: int, contact: SupplierContact | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            SupplierMode.SAVE_CONTACT,
            {"SupplierID": supplier_id, **payload_of(SupplierContact, contact)},
            action="save contact",
            mutation=True,
        )

    def save_supplier_bank_details(
        self, supplier_id: int, bank_detail: SupplierBankDetail | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            SupplierMode.SAVE_BANK_DETAILS,
            {"SupplierID": supplier_id, **payload_of(SupplierBankDetail, bank_detail)},
            action="save bank details",
            mutation=True,
        )

    def create_supplier_type(self, supplier_type: SupplierType | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            SupplierMode.CREATE_TYPE,
            payload_of(SupplierType, supplier_type),
            action="create supplier type",
            mutation=True,
        )

    def get_supplier_types(self) -> DispatchResult[list[SupplierType]]:
        return self.call(SupplierMode.GET_TYPES, action="load supplier types", parse=rows_of(SupplierType))

    def get_supplier_contacts(self, supplier_id: int) -> DispatchResult[list[SupplierContact]]:
        return self.call(
            SupplierMode.GET_CONTACTS,
            {"SupplierID": supplier_id},
            action="load contacts",
            parse=rows_of(SupplierContact),
        )

    def get_supplier_bank_details(self, supplier_id: int) -> DispatchResult[list[SupplierBankDetail]]:
        return self.call(
            SupplierMode.GET_BANK_DETAILS,
            {"SupplierID": supplier_id},
            action="load bank details",
            parse=rows_of(SupplierBankDetail),
        )

    def delete_supplier_contact(self, supplier_id: int, contact_id: int) -> DispatchResult[None]:
        return self.call(
            SupplierMode.DELETE_CONTACT,
            {"SupplierID": supplier_id, "SupplierContactID": contact_id},
            action="delete contact",
            mutation=True,
        )

    def delete_supplier_bank_details(self, supplier_id: int, bank_id: int) -> DispatchResult[None]:
        return self.call(
            SupplierMode.DELETE_BANK_DETAILS,
            {"SupplierID": supplier_id, "SupplierBankID": bank_id},
            action="delete bank details",
            mutation=True,
        )


# ----------------------------------------------------------------------
# properties
# ----------------------------------------------------------------------
class PropertyClient(DispatchClient):
    modes = PropertyMode

    def create_property(
        self, prop: Property | Mapping[str, Any], *, attachments: AttachmentStaging | None = None
    ) -> DispatchResult[None]:
        payload = payload_of(Property, prop)
        if not payload.get("PropertyName"):
            return self.invalid("Property name is required")
        attachment_rows, errors = _submission(attachments)
        if errors:
            return self.invalid(errors)
        return self.call(
            PropertyMode.CREATE,
            {**payload, "AttachmentsJSON": attachment_rows},
            action="create property",
            mutation=True,
        )

    def update_property(
        self,
        property_id: int,
        changes: Property | Mapping[str, Any],
        *,
        attachments: AttachmentStaging | None = None,
    ) -> DispatchResult[None]:
        attachment_rows, errors = _submission(attachments)
        if errors:
            return self.invalid(errors)
        return self.call(
            PropertyMode.UPDATE,
            {"PropertyID": property_id, **payload_of(Property, changes), "AttachmentsJSON": attachment_rows or None},
            action="update property",
            mutation=True,
        )

    def get_all_properties(self) -> DispatchResult[list[Property]]:
        return self.call(PropertyMode.GET_ALL, action="load properties", parse=rows_of(Property))

    def get_property_by_id(self, property_id: int) -> DispatchResult[PropertyDetail]:
        return self.call(
            PropertyMode.GET_BY_ID, {"PropertyID": property_id}, action="load property", parse=_property_detail
        )

    def delete_property(self, property_id: int) -> DispatchResult[None]:
        return self.call(PropertyMode.DELETE, {"PropertyID": property_id}, action="delete property", mutation=True)

    def search_properties(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Property]]:
        return self.call(PropertyMode.SEARCH, dict(filters or {}), action="search properties", parse=rows_of(Property))


# ----------------------------------------------------------------------
# additional charges
# ----------------------------------------------------------------------
class ChargeClient(DispatchClient):
    modes = ChargeMode

    def create_charge(self, charge: Charge | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(ChargeMode.CREATE, payload_of(Charge, charge), action="create charge", mutation=True)

    def update_charge(self, charge_id: int, changes: Charge | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            ChargeMode.UPDATE,
            {"ChargesID": charge_id, **payload_of(Charge, changes)},
            action="update charge",
            mutation=True,
        )

    def get_all_charges(self) -> DispatchResult[list[Charge]]:
        return self.call(ChargeMode.GET_ALL, action="load charges", parse=rows_of(Charge))

    def get_charge_by_id(self, charge_id: int) -> DispatchResult[Charge]:
        return self.call(ChargeMode.GET_BY_ID, {"ChargesID": charge_id}, action="load charge", parse=one_of(Charge))

    def delete_charge(self, charge_id: int) -> DispatchResult[None]:
        return self.call(ChargeMode.DELETE, {"ChargesID": charge_id}, action="delete charge", mutation=True)

    def search_charges(
        self,
        search_text: str | None = None,
        *,
        category_id: int | None = None,
        is_active: bool | None = None,
    ) -> DispatchResult[list[Charge]]:
        return self.call(
            ChargeMode.SEARCH,
            {"SearchText": search_text, "FilterChargesCategoryID": category_id, "FilterIsActive": is_active},
            action="search charges",
            parse=rows_of(Charge),
        )

    def get_charges_by_category(self, category_id: int) -> DispatchResult[list[Charge]]:
        return self.call(
            ChargeMode.BY_CATEGORY,
            {"ChargesCategoryID": category_id},
            action="load charges",
            parse=rows_of(Charge),
        )

    def toggle_charge_status(self, charge_id: int, is_active: bool | None = None) -> DispatchResult[None]:
        return self.call(
            ChargeMode.TOGGLE_STATUS,
            {"ChargesID": charge_id, "IsActive": is_active},
            action="change charge status",
            mutation=True,
        )


# ----------------------------------------------------------------------
# document types
# ----------------------------------------------------------------------
class DocTypeClient(DispatchClient):
    modes = DocTypeMode

    def create_doc_type(self, description: str, *, is_active: bool = True) -> DispatchResult[None]:
        if not description or not description.strip():
            return self.invalid("Description is required")
        return self.call(
            DocTypeMode.CREATE,
            {"Description": description.strip(), "IsActive": is_active},
            action="create document type",
            mutation=True,
        )

    def update_doc_type(self, doc_type_id: int, changes: DocType | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            DocTypeMode.UPDATE,
            {"DocTypeID": doc_type_id, **payload_of(DocType, changes)},
            action="update document type",
            mutation=True,
        )

    def get_all_doc_types(self) -> DispatchResult[list[DocType]]:
        return self.call(DocTypeMode.GET_ALL, action="load document types", parse=rows_of(DocType))

    def get_doc_type_by_id(self, doc_type_id: int) -> DispatchResult[DocType]:
        return self.call(
            DocTypeMode.GET_BY_ID, {"DocTypeID": doc_type_id}, action="load document type", parse=one_of(DocType)
        )

    def delete_doc_type(self, doc_type_id: int) -> DispatchResult[None]:
        return self.call(
            DocTypeMode.DELETE, {"DocTypeID": doc_type_id}, action="delete document type", mutation=True
        )

    def search_doc_types(self, search_text: str | None = None) -> DispatchResult[list[DocType]]:
        return self.call(
            DocTypeMode.SEARCH, {"SearchText": search_text}, action="search document types", parse=rows_of(DocType)
        )
