"""Master data modes: suppliers, properties, additional charges, document types."""
from __future__ import annotations

from typing import Any, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError
from lease_erp.core.modes import ChargeMode, DocTypeMode, PropertyMode, SupplierMode
from lease_erp.core.schema import (
    Charge,
    DocType,
    Property,
    Supplier,
    SupplierBankDetail,
    SupplierContact,
    SupplierType,
)
from lease_erp.core.wire import is_truthy
from lease_erp.domain import Principal
from lease_erp.infrastructure.store import TABLES, LeaseRepository

from . import ledger
from .attachments import attachments_of, check_attachments, save_attachments
from .dispatch import (
    EntityHandler,
    by_id,
    contains_text,
    json_rows,
    normalise_record,
    opt_flag,
    opt_id,
    opt_text,
    req_id,
    req_text,
)


def _require_unique(
    repository: LeaseRepository,
    table: str,
    field: str,
    value: Any,
    label: str,
    exclude_id: int | None = None,
) -> None:
    if not value:
        return
    id_field = TABLES[table]
    for row in repository.list(table, lambda row: str(row.get(field) or "").lower() == str(value).lower()):
        if row[id_field] != exclude_id:
            raise ConflictError(f"{label} {value} already exists")


# ----------------------------------------------------------------------
# suppliers
# ----------------------------------------------------------------------
class SupplierHandler(EntityHandler[SupplierMode]):
    modes = SupplierMode
    owner = "Supplier"

    def handle(self, mode: SupplierMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case SupplierMode.CREATE:
                return self._create(params, principal)
            case SupplierMode.UPDATE:
                return self._update(params, principal)
            case SupplierMode.GET_ALL:
                return ResponseEnvelope.success(data=self._rows({}))
            case SupplierMode.GET_BY_ID:
                supplier = self._supplier(params)
                supplier_id = supplier["SupplierID"]
                return ResponseEnvelope.success(
                    table1=[self._decorate(supplier)],
                    table2=self._contacts(supplier_id),
                    table3=self._bank_details(supplier_id),
                    table4=attachments_of(self.repository, self.owner, supplier_id),
                )
            case SupplierMode.DELETE:
                supplier = self._supplier(params)
                self.repository.soft_delete("suppliers", supplier["SupplierID"], principal)
                return ResponseEnvelope.success("Supplier deleted successfully")
            case SupplierMode.SEARCH:
                return ResponseEnvelope.success(data=self._rows(params))
            case SupplierMode.SAVE_CONTACT:
                supplier = self._supplier(params)
                row = self._save_contact(supplier["SupplierID"], params, principal)
                return ResponseEnvelope.success(
                    "Contact saved successfully", SupplierContactID=row["SupplierContactID"]
                )
            case SupplierMode.SAVE_BANK_DETAILS:
                supplier = self._supplier(params)
                row = self._save_bank_detail(supplier["SupplierID"], params, principal)
                return ResponseEnvelope.success(
                    "Bank details saved successfully", SupplierBankID=row["SupplierBankID"]
                )
            case SupplierMode.CREATE_TYPE:
                record = normalise_record(SupplierType.pick_writable(params))
                if not record.get("SupplierTypeName"):
                    raise DomainError("Supplier type name is required")
                _require_unique(
                    self.repository, "supplier_types", "SupplierTypeName", record["SupplierTypeName"], "Supplier type"
                )
                record["IsActive"] = is_truthy(record.get("IsActive", True))
                row = self.repository.insert("supplier_types", record, principal)
                return ResponseEnvelope.success(
                    "Supplier type created successfully", NewSupplierTypeID=row["SupplierTypeID"]
                )
            case SupplierMode.GET_TYPES:
                return ResponseEnvelope.success(data=by_id(self.repository.list("supplier_types"), "SupplierTypeID"))
            case SupplierMode.GET_CONTACTS:
                return ResponseEnvelope.success(data=self._contacts(self._supplier(params)["SupplierID"]))
            case SupplierMode.GET_BANK_DETAILS:
                return ResponseEnvelope.success(data=self._bank_details(self._supplier(params)["SupplierID"]))
            case SupplierMode.DELETE_CONTACT:
                contact = self._child("supplier_contacts", req_id(params, "SupplierContactID", "Contact"), params)
                self.repository.soft_delete("supplier_contacts", contact["SupplierContactID"], principal)
                return ResponseEnvelope.success("Contact deleted successfully")
            case SupplierMode.DELETE_BANK_DETAILS:
                bank = self._child("supplier_bank_details", req_id(params, "SupplierBankID", "Bank detail"), params)
                self.repository.soft_delete("supplier_bank_details", bank["SupplierBankID"], principal)
                return ResponseEnvelope.success("Bank details deleted successfully")
            case _:
                assert_never(mode)

    # helpers
    def _supplier(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("suppliers", req_id(params, "SupplierID", "Supplier"))

    def _child(self, table: str, child_id: int, params: dict[str, Any]) -> dict[str, Any]:
        row = self.repository.require(table, child_id)
        supplier_id = opt_id(params, "SupplierID")
        if supplier_id and row.get("SupplierID") != supplier_id:
            raise DomainError("Record does not belong to this supplier")
        return row

    def _decorate(self, row: dict[str, Any]) -> dict[str, Any]:
        supplier_type = self.repository.get("supplier_types", row.get("SupplierTypeID"))
        row["SupplierTypeName"] = supplier_type.get("SupplierTypeName") if supplier_type else None
        return row

    def _contacts(self, supplier_id: int) -> list[dict[str, Any]]:
        rows = self.repository.list("supplier_contacts", lambda row: row.get("SupplierID") == supplier_id)
        return by_id(rows, "SupplierContactID")

    def _bank_details(self, supplier_id: int) -> list[dict[str, Any]]:
        rows = self.repository.list("supplier_bank_details", lambda row: row.get("SupplierID") == supplier_id)
        return by_id(rows, "SupplierBankID")

    def _rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        type_id = opt_id(params, "FilterSupplierTypeID")
        company_id = opt_id(params, "FilterCompanyID")
        status = opt_text(params, "FilterStatus")

        def keep(row: dict[str, Any]) -> bool:
            return all((
                not type_id or row.get("SupplierTypeID") == type_id,
                not company_id or row.get("CompanyID") == company_id,
                not status or str(row.get("Status") or "").lower() == status.lower(),
                contains_text(row, text, ("SupplierNo", "SupplierName", "Email", "Phone", "TaxNo")),
            ))

        return by_id([self._decorate(row) for row in self.repository.list("suppliers", keep)], "SupplierID")

    def _check_children(
        self, supplier_id: int | None, contacts: list[dict[str, Any]], banks: list[dict[str, Any]]
    ) -> None:
        """Validate contact and bank rows before the supplier itself is written."""
        for values in contacts:
            record = normalise_record(SupplierContact.pick_writable(values))
            contact_id = record.get("SupplierContactID")
            if contact_id:
                if supplier_id is None:
                    raise DomainError("Record does not belong to this supplier")
                self._child("supplier_contacts", contact_id, {"SupplierID": supplier_id})
            elif not record.get("ContactName"):
                raise DomainError("Contact name is required")
        for values in banks:
            record = normalise_record(SupplierBankDetail.pick_writable(values))
            bank_id = record.get("SupplierBankID")
            if bank_id:
                if supplier_id is None:
                    raise DomainError("Record does not belong to this supplier")
                self._child("supplier_bank_details", bank_id, {"SupplierID": supplier_id})
            elif not record.get("AccountNo") and not record.get("IBAN"):
                raise DomainError("Account number or IBAN is required")

    def _save_contact(self, supplier_id: int, values: dict[str, Any], principal: Principal) -> dict[str, Any]:
        record = normalise_record(SupplierContact.pick_writable(values))
        contact_id = record.pop("SupplierContactID", None)
        if not contact_id and not record.get("ContactName"):
            raise DomainError("Contact name is required")
        if is_truthy(record.get("IsPrimary", False)):
            record["IsPrimary"] = True
            for other in self._contacts(supplier_id):
                if other["IsPrimary"] and other["SupplierContactID"] != contact_id:
                    self.repository.update("supplier_contacts", other["SupplierContactID"], {"IsPrimary": False}, principal)
        if contact_id:
            self._child("supplier_contacts", contact_id, {"SupplierID": supplier_id})
            return self.repository.update("supplier_contacts", contact_id, record, principal)
        record.setdefault("IsPrimary", False)
        record["SupplierID"] = supplier_id
        return self.repository.insert("supplier_contacts", record, principal)

    def _save_bank_detail(self, supplier_id: int, values: dict[str, Any], principal: Principal) -> dict[str, Any]:
        record = normalise_record(SupplierBankDetail.pick_writable(values))
        bank_id = record.pop("SupplierBankID", None)
        if not bank_id and not record.get("AccountNo") and not record.get("IBAN"):
            raise DomainError("Account number or IBAN is required")
        if is_truthy(record.get("IsDefault", False)):
            record["IsDefault"] = True
            for other in self._bank_details(supplier_id):
                if other["IsDefault"] and other["SupplierBankID"] != bank_id:
                    self.repository.update("supplier_bank_details", other["SupplierBankID"], {"IsDefault": False}, principal)
        if bank_id:
            self._child("supplier_bank_details", bank_id, {"SupplierID": supplier_id})
            return self.repository.update("supplier_bank_details", bank_id, record, principal)
        record.setdefault("IsDefault", False)
        record["SupplierID"] = supplier_id
        return self.repository.insert("supplier_bank_details", record, principal)

    # modes
    def _create(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        record = normalise_record(Supplier.pick_writable(params))
        if not record.get("SupplierName"):
            raise DomainError("Supplier name is required")
        if record.get("SupplierTypeID"):
            self.repository.require("supplier_types", record["SupplierTypeID"])
        _require_unique(self.repository, "suppliers", "SupplierNo", record.get("SupplierNo"), "Supplier number")
        attachments = json_rows(params, "AttachmentsJSON")
        contacts = json_rows(params, "ContactsJSON")
        banks = json_rows(params, "BankDetailsJSON")
        self._check_children(None, contacts, banks)
        check_attachments([row for row in attachments if row.get("isNew", True)])
        record["SupplierNo"] = record.get("SupplierNo") or ledger.next_document_no(self.repository, "supplier", "SUP")
        record.setdefault("Status", "Active")

        supplier = self.repository.insert("suppliers", record, principal)
        supplier_id = supplier["SupplierID"]
        for contact in contacts:
            self._save_contact(supplier_id, contact, principal)
        for bank in banks:
            self._save_bank_detail(supplier_id, bank, principal)
        save_attachments(self.repository, self.owner, supplier_id, attachments, principal)
        return ResponseEnvelope.success(
            "Supplier created successfully", NewSupplierID=supplier_id, SupplierNo=record["SupplierNo"]
        )

    def _update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        supplier = self._supplier(params)
        supplier_id = supplier["SupplierID"]
        changes = normalise_record(Supplier.pick_writable(params))
        _require_unique(
            self.repository, "suppliers", "SupplierNo", changes.get("SupplierNo"), "Supplier number", supplier_id
        )
        attachments = json_rows(params, "AttachmentsJSON")
        contacts = json_rows(params, "ContactsJSON")
        banks = json_rows(params, "BankDetailsJSON")
        self._check_children(supplier_id, contacts, banks)
        check_attachments([row for row in attachments if row.get("isNew", True)])
        self.repository.update("suppliers", supplier_id, changes, principal)
        for contact in contacts:
            self._save_contact(supplier_id, contact, principal)
        for bank in banks:
            self._save_bank_detail(supplier_id, bank, principal)
        save_attachments(self.repository, self.owner, supplier_id, attachments, principal)
        return ResponseEnvelope.success("Supplier updated successfully")


# ----------------------------------------------------------------------
# properties
# ----------------------------------------------------------------------
class PropertyHandler(EntityHandler[PropertyMode]):
    modes = PropertyMode
    owner = "Property"
    date_fields = ("ProjectStartDate", "ProjectCompletionDate")

    def handle(self, mode: PropertyMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case PropertyMode.CREATE:
                record = normalise_record(Property.pick_writable(params), self.date_fields)
                if not record.get("PropertyName"):
                    raise DomainError("Property name is required")
                _require_unique(self.repository, "properties", "PropertyNo", record.get("PropertyNo"), "Property number")
                attachments = json_rows(params, "AttachmentsJSON")
                check_attachments([row for row in attachments if row.get("isNew", True)])
                row = self.repository.insert("properties", record, principal)
                save_attachments(self.repository, self.owner, row["PropertyID"], attachments, principal)
                return ResponseEnvelope.success("Property created successfully", NewPropertyID=row["PropertyID"])
            case PropertyMode.UPDATE:
                current = self._property(params)
                changes = normalise_record(Property.pick_writable(params), self.date_fields)
                _require_unique(
                    self.repository, "properties", "PropertyNo", changes.get("PropertyNo"),
                    "Property number", current["PropertyID"],
                )
                attachments = json_rows(params, "AttachmentsJSON")
                check_attachments([row for row in attachments if row.get("isNew", True)])
                self.repository.update("properties", current["PropertyID"], changes, principal)
                save_attachments(self.repository, self.owner, current["PropertyID"], attachments, principal)
                return ResponseEnvelope.success("Property updated successfully")
            case PropertyMode.GET_ALL:
                return ResponseEnvelope.success(data=self._rows({}))
            case PropertyMode.GET_BY_ID:
                current = self._property(params)
                return ResponseEnvelope.success(
                    table1=[current],
                    table2=attachments_of(self.repository, self.owner, current["PropertyID"]),
                )
            case PropertyMode.DELETE:
                current = self._property(params)
                if self.repository.list("contract_units", lambda row: row.get("PropertyID") == current["PropertyID"]):
                    raise DomainError("Cannot delete a property that is used by contracts")
                self.repository.soft_delete("properties", current["PropertyID"], principal)
                return ResponseEnvelope.success("Property deleted successfully")
            case PropertyMode.SEARCH:
                return ResponseEnvelope.success(data=self._rows(params))
            case _:
                assert_never(mode)

    def _property(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("properties", req_id(params, "PropertyID", "Property"))

    def _rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        community_id = opt_id(params, "FilterCommunityID")
        country_id = opt_id(params, "FilterCountryID")
        city_id = opt_id(params, "FilterCityID")

        def keep(row: dict[str, Any]) -> bool:
            return all((
                not community_id or row.get("CommunityID") == community_id,
                not country_id or row.get("CountryID") == country_id,
                not city_id or row.get("CityID") == city_id,
                contains_text(row, text, ("PropertyNo", "PropertyName", "TitleDeed", "PlotNo")),
            ))

        return by_id(self.repository.list("properties", keep), "PropertyID")


# ----------------------------------------------------------------------
# additional charges
# ----------------------------------------------------------------------
class ChargeHandler(EntityHandler[ChargeMode]):
    modes = ChargeMode

    def handle(self, mode: ChargeMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case ChargeMode.CREATE:
                record = normalise_record(Charge.pick_writable(params))
                if not record.get("ChargesName"):
                    raise DomainError("Charge name is required")
                _require_unique(self.repository, "charges", "ChargesCode", record.get("ChargesCode"), "Charge code")
                record["IsActive"] = is_truthy(record.get("IsActive", True))
                row = self.repository.insert("charges", record, principal)
                return ResponseEnvelope.success("Charge created successfully", NewChargesID=row["ChargesID"])
            case ChargeMode.UPDATE:
                current = self._charge(params)
                changes = normalise_record(Charge.pick_writable(params))
                _require_unique(
                    self.repository, "charges", "ChargesCode", changes.get("ChargesCode"),
                    "Charge code", current["ChargesID"],
                )
                if "IsActive" in changes:
                    changes["IsActive"] = is_truthy(changes["IsActive"])
                self.repository.update("charges", current["ChargesID"], changes, principal)
                return ResponseEnvelope.success("Charge updated successfully")
            case ChargeMode.GET_ALL:
                return ResponseEnvelope.success(data=self._rows({}))
            case ChargeMode.GET_BY_ID:
                return ResponseEnvelope.success(data=self._charge(params))
            case ChargeMode.DELETE:
                current = self._charge(params)
                in_use = self.repository.list(
                    "contract_charges", lambda row: row.get("AdditionalChargesID") == current["ChargesID"]
                )
                if in_use:
                    raise DomainError("Cannot delete a charge that is used by contracts")
                self.repository.soft_delete("charges", current["ChargesID"], principal)
                return ResponseEnvelope.success("Charge deleted successfully")
            case ChargeMode.SEARCH:
                return ResponseEnvelope.success(data=self._rows(params))
            case ChargeMode.BY_CATEGORY:
                category_id = req_id(params, "ChargesCategoryID", "Charge category")
                rows = [
                    row for row in self._rows(params)
                    if row.get("ChargesCategoryID") == category_id and row.get("IsActive")
                ]
                return ResponseEnvelope.success(data=rows)
            case ChargeMode.TOGGLE_STATUS:
                current = self._charge(params)
                active = opt_flag(params, "IsActive")
                active = (not current.get("IsActive")) if active is None else active
                self.repository.update("charges", current["ChargesID"], {"IsActive": active}, principal)
                state = "activated" if active else "deactivated"
                return ResponseEnvelope.success(f"Charge {state} successfully", IsActive=active)
            case _:
                assert_never(mode)

    def _charge(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("charges", req_id(params, "ChargesID", "Charge"))

    def _rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        category_id = opt_id(params, "FilterChargesCategoryID")
        active = opt_flag(params, "FilterIsActive")

        def keep(row: dict[str, Any]) -> bool:
            return all((
                not category_id or row.get("ChargesCategoryID") == category_id,
                active is None or bool(row.get("IsActive")) == active,
                contains_text(row, text, ("ChargesCode", "ChargesName", "Remark")),
            ))

        return by_id(self.repository.list("charges", keep), "ChargesID")


# ----------------------------------------------------------------------
# document types
# ----------------------------------------------------------------------
class DocTypeHandler(EntityHandler[DocTypeMode]):
    modes = DocTypeMode

    def handle(self, mode: DocTypeMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case DocTypeMode.CREATE:
                record = normalise_record(DocType.pick_writable(params))
                description = req_text(record, "Description", "Description")
                _require_unique(self.repository, "doc_types", "Description", description, "Document type")
                record["IsActive"] = is_truthy(record.get("IsActive", True))
                row = self.repository.insert("doc_types", record, principal)
                return ResponseEnvelope.success("Document type created successfully", NewDocTypeID=row["DocTypeID"])
            case DocTypeMode.UPDATE:
                current = self._doc_type(params)
                changes = normalise_record(DocType.pick_writable(params))
                _require_unique(
                    self.repository, "doc_types", "Description", changes.get("Description"),
                    "Document type", current["DocTypeID"],
                )
                if "IsActive" in changes:
                    changes["IsActive"] = is_truthy(changes["IsActive"])
                self.repository.update("doc_types", current["DocTypeID"], changes, principal)
                return ResponseEnvelope.success("Document type updated successfully")
            case DocTypeMode.GET_ALL:
                return ResponseEnvelope.success(data=by_id(self.repository.list("doc_types"), "DocTypeID"))
            case DocTypeMode.GET_BY_ID:
                return ResponseEnvelope.success(data=self._doc_type(params))
            case DocTypeMode.DELETE:
                current = self._doc_type(params)
                if self.repository.list("attachments", lambda row: row.get("DocTypeID") == current["DocTypeID"]):
                    raise DomainError("Cannot delete a document type that is used by attachments")
                self.repository.soft_delete("doc_types", current["DocTypeID"], principal)
                return ResponseEnvelope.success("Document type deleted successfully")
            case DocTypeMode.SEARCH:
                text = opt_text(params, "SearchText")
                rows = self.repository.list("doc_types", lambda row: contains_text(row, text, ("Description",)))
                return ResponseEnvelope.success(data=by_id(rows, "DocTypeID"))
            case _:
                assert_never(mode)

    def _doc_type(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("doc_types", req_id(params, "DocTypeID", "Document type"))
