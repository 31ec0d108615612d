from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from lease_erp.core.wire import compact, parse_date

WireDate = Annotated[date | None, BeforeValidator(parse_date)]


class WireRecord(BaseModel):
    """Entity row as exchanged with the backend (PascalCase wire names).

    ``writable_fields`` lists what create/update modes accept; everything else
    is server assigned (IDs, audit stamps) or a joined display value that is
    never sent back.
    """

    model_config = ConfigDict(extra="allow")

    id_field: ClassVar[str] = ""
    writable_fields: ClassVar[tuple[str, ...]] = ()

    CreatedBy: str | None = None
    CreatedID: int | None = None
    CreatedOn: datetime | None = None
    UpdatedBy: str | None = None
    UpdatedID: int | None = None
    UpdatedOn: datetime | None = None
    DeletedBy: str | None = None
    DeletedOn: datetime | None = None
    RecordStatus: int | None = None

    @property
    def identity(self) -> int | None:
        return getattr(self, self.id_field, None)

    def writable_payload(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", include=set(self.writable_fields), exclude_unset=True)
        return compact(data)

    @classmethod
    def pick_writable(cls, values: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in values.items() if key in cls.writable_fields}


class Attachment(WireRecord):
    id_field: ClassVar[str] = "AttachmentID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "DocTypeID",
        "DocumentName",
        "FileName",
        "FileContent",
        "FileContentType",
        "FileSize",
        "DocIssueDate",
        "DocExpiryDate",
        "IsMainImage",
        "Remarks",
    )

    AttachmentID: int | None = None
    DocTypeID: int = 0
    DocumentName: str | None = None
    FileName: str | None = None
    FileContent: str | None = None
    FileContentType: str | None = None
    FileSize: int | None = None
    DocIssueDate: WireDate = None
    DocExpiryDate: WireDate = None
    IsMainImage: bool = False
    Remarks: str | None = None
    isNew: bool = False
    DocTypeName: str | None = None


class FiscalYear(WireRecord):
    id_field: ClassVar[str] = "FiscalYearID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "FYCode",
        "FYDescription",
        "StartDate",
        "EndDate",
        "CompanyID",
        "IsActive",
    )

    FiscalYearID: int | None = None
    FYCode: str | None = None
    FYDescription: str | None = None
    StartDate: WireDate = None
    EndDate: WireDate = None
    CompanyID: int | None = None
    IsActive: bool = True
    IsClosed: bool = False


class AccountingPeriod(WireRecord):
    id_field: ClassVar[str] = "PeriodID"

    PeriodID: int | None = None
    PeriodCode: str | None = None
    PeriodName: str | None = None
    FiscalYearID: int | None = None
    PeriodNumber: int | None = None
    StartDate: WireDate = None
    EndDate: WireDate = None
    IsOpen: bool = True
    IsClosed: bool = False
    ClosedByUserID: int | None = None
    ClosedByUserName: str | None = None
    ClosedOn: datetime | None = None
    ClosingComments: str | None = None
    CompanyID: int | None = None
    FYCode: str | None = None
    FYDescription: str | None = None


class Receipt(WireRecord):
    id_field: ClassVar[str] = "LeaseReceiptID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "ReceiptNo",
        "ReceiptDate",
        "LeaseInvoiceID",
        "CustomerID",
        "CompanyID",
        "FiscalYearID",
        "PaymentType",
        "PaymentStatus",
        "ReceivedAmount",
        "CurrencyID",
        "ExchangeRate",
        "BankID",
        "BankAccountNo",
        "ChequeNo",
        "ChequeDate",
        "TransactionReference",
        "DepositedBankID",
        "DepositDate",
        "ClearanceDate",
        "IsAdvancePayment",
        "SecurityDepositAmount",
        "PenaltyAmount",
        "DiscountAmount",
        "ReceivedByUserID",
        "AccountID",
        "Notes",
        "RequiresApproval",
    )

    LeaseReceiptID: int | None = None
    ReceiptNo: str | None = None
    ReceiptDate: WireDate = None
    LeaseInvoiceID: int | None = None
    CustomerID: int | None = None
    CompanyID: int | None = None
    FiscalYearID: int | None = None
    PaymentType: str = "Cash"
    PaymentStatus: str = "Received"
    ReceivedAmount: float = 0.0
    CurrencyID: int | None = None
    ExchangeRate: float | None = None
    BankID: int | None = None
    BankAccountNo: str | None = None
    ChequeNo: str | None = None
    ChequeDate: WireDate = None
    TransactionReference: str | None = None
    DepositedBankID: int | None = None
    DepositDate: WireDate = None
    ClearanceDate: WireDate = None
    IsAdvancePayment: bool = False
    SecurityDepositAmount: float | None = None
    PenaltyAmount: float | None = None
    DiscountAmount: float | None = None
    ReceivedByUserID: int | None = None
    AccountID: int | None = None
    IsPosted: bool = False
    PostingID: int | None = None
    Notes: str | None = None
    RequiresApproval: bool = False
    ApprovalStatus: str | None = None
    ApprovedBy: str | None = None
    ApprovedOn: datetime | None = None
    ApprovalComments: str | None = None
    RejectedBy: str | None = None
    RejectedOn: datetime | None = None
    RejectionReason: str | None = None
    AllocatedAmount: float = 0.0
    InvoiceNo: str | None = None


class LedgerPosting(WireRecord):
    id_field: ClassVar[str] = "PostingID"

    PostingID: int | None = None
    VoucherNo: str | None = None
    SourceType: str | None = None
    SourceID: int | None = None
    TransactionType: str | None = None
    PostingDate: WireDate = None
    DebitAccountID: int | None = None
    CreditAccountID: int | None = None
    Amount: float = 0.0
    Narration: str | None = None
    PostingReference: str | None = None
    IsReversed: bool = False
    ReversalReason: str | None = None
    ReversalOfPostingID: int | None = None
    PeriodID: int | None = None


class ReceiptAllocation(WireRecord):
    id_field: ClassVar[str] = "AllocationID"

    AllocationID: int | None = None
    LeaseReceiptID: int | None = None
    LeaseInvoiceID: int | None = None
    AllocatedAmount: float = 0.0
    AllocationDate: WireDate = None
    Notes: str | None = None
    ReceiptNo: str | None = None
    InvoiceNo: str | None = None


class Invoice(WireRecord):
    id_field: ClassVar[str] = "LeaseInvoiceID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "InvoiceNo",
        "InvoiceDate",
        "DueDate",
        "ContractID",
        "ContractUnitID",
        "CustomerID",
        "CompanyID",
        "FiscalYearID",
        "PeriodFromDate",
        "PeriodToDate",
        "SubTotal",
        "TaxAmount",
        "DiscountAmount",
        "TotalAmount",
        "InvoiceStatus",
        "InvoiceType",
        "Notes",
        "RequiresApproval",
    )

    LeaseInvoiceID: int | None = None
    InvoiceNo: str | None = None
    InvoiceDate: WireDate = None
    DueDate: WireDate = None
    ContractID: int | None = None
    ContractUnitID: int | None = None
    CustomerID: int | None = None
    CompanyID: int | None = None
    FiscalYearID: int | None = None
    PeriodFromDate: WireDate = None
    PeriodToDate: WireDate = None
    SubTotal: float = 0.0
    TaxAmount: float = 0.0
    DiscountAmount: float = 0.0
    TotalAmount: float = 0.0
    PaidAmount: float = 0.0
    BalanceAmount: float = 0.0
    InvoiceStatus: str = "Draft"
    InvoiceType: str | None = None
    Notes: str | None = None
    IsPosted: bool = False
    PostingID: int | None = None
    RequiresApproval: bool = True
    ApprovalStatus: str | None = None
    ApprovedBy: str | None = None
    ApprovedOn: datetime | None = None
    ApprovalComments: str | None = None
    RejectedBy: str | None = None
    RejectedOn: datetime | None = None
    RejectionReason: str | None = None
    ContractNo: str | None = None


class ReceiptDetail(BaseModel):
    receipt: Receipt
    postings: list[LedgerPosting] = Field(default_factory=list)
    allocations: list[ReceiptAllocation] = Field(default_factory=list)


class InvoiceDetail(BaseModel):
    invoice: Invoice
    allocations: list[ReceiptAllocation] = Field(default_factory=list)
    postings: list[LedgerPosting] = Field(default_factory=list)


class ContractUnit(WireRecord):
    id_field: ClassVar[str] = "ContractUnitID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "UnitID",
        "PropertyID",
        "FromDate",
        "ToDate",
        "RentPerMonth",
        "RentPerYear",
        "NoOfInstallments",
        "TotalAmount",
    )

    ContractUnitID: int | None = None
    ContractID: int | None = None
    UnitID: int | None = None
    PropertyID: int | None = None
    FromDate: WireDate = None
    ToDate: WireDate = None
    RentPerMonth: float | None = None
    RentPerYear: float | None = None
    NoOfInstallments: int | None = None
    TotalAmount: float = 0.0


class ContractCharge(WireRecord):
    id_field: ClassVar[str] = "ContractAdditionalChargeID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "AdditionalChargesID",
        "Amount",
        "TaxPercentage",
        "TaxAmount",
        "TotalAmount",
    )

    ContractAdditionalChargeID: int | None = None
    ContractID: int | None = None
    AdditionalChargesID: int | None = None
    Amount: float = 0.0
    TaxPercentage: float | None = None
    TaxAmount: float | None = None
    TotalAmount: float = 0.0
    ChargesName: str | None = None


class Contract(WireRecord):
    id_field: ClassVar[str] = "ContractID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "ContractNo",
        "CustomerID",
        "JointCustomerID",
        "TransactionDate",
        "StartDate",
        "EndDate",
        "TotalAmount",
        "AdditionalCharges",
        "GrandTotal",
        "CompanyID",
        "FiscalYearID",
        "Remarks",
        "RequiresApproval",
    )

    ContractID: int | None = None
    ContractNo: str | None = None
    ContractStatus: str = "Draft"
    CustomerID: int | None = None
    JointCustomerID: int | None = None
    TransactionDate: WireDate = None
    StartDate: WireDate = None
    EndDate: WireDate = None
    TotalAmount: float = 0.0
    AdditionalCharges: float = 0.0
    GrandTotal: float = 0.0
    CompanyID: int | None = None
    FiscalYearID: int | None = None
    Remarks: str | None = None
    RequiresApproval: bool = True
    ApprovalStatus: str | None = None
    ApprovedBy: str | None = None
    ApprovedOn: datetime | None = None
    ApprovalComments: str | None = None
    RejectedBy: str | None = None
    RejectedOn: datetime | None = None
    RejectionReason: str | None = None
    UnitCount: int | None = None
    ChargeCount: int | None = None
    AttachmentCount: int | None = None


class ContractDetail(BaseModel):
    contract: Contract
    units: list[ContractUnit] = Field(default_factory=list)
    charges: list[ContractCharge] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)


class SupplierType(WireRecord):
    id_field: ClassVar[str] = "SupplierTypeID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "SupplierTypeCode",
        "SupplierTypeName",
        "Description",
        "IsActive",
    )

    SupplierTypeID: int | None = None
    SupplierTypeCode: str | None = None
    SupplierTypeName: str | None = None
    Description: str | None = None
    IsActive: bool = True


class Supplier(WireRecord):
    id_field: ClassVar[str] = "SupplierID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "SupplierNo",
        "SupplierName",
        "SupplierTypeID",
        "Status",
        "TaxNo",
        "Phone",
        "Email",
        "Address",
        "CountryID",
        "CityID",
        "CompanyID",
        "CreditLimit",
        "PaymentTermDays",
        "Remarks",
    )

    SupplierID: int | None = None
    SupplierNo: str | None = None
    SupplierName: str | None = None
    SupplierTypeID: int | None = None
    Status: str = "Active"
    TaxNo: str | None = None
    Phone: str | None = None
    Email: str | None = None
    Address: str | None = None
    CountryID: int | None = None
    CityID: int | None = None
    CompanyID: int | None = None
    CreditLimit: float | None = None
    PaymentTermDays: int | None = None
    Remarks: str | None = None
    SupplierTypeName: str | None = None


class SupplierContact(WireRecord):
    id_field: ClassVar[str] = "SupplierContactID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "SupplierContactID",
        "ContactName",
        "Designation",
        "Phone",
        "Email",
        "IsPrimary",
    )

    SupplierContactID: int | None = None
    SupplierID: int | None = None
    ContactName: str | None = None
    Designation: str | None = None
    Phone: str | None = None
    Email: str | None = None
    IsPrimary: bool = False


class SupplierBankDetail(WireRecord):
    id_field: ClassVar[str] = "SupplierBankID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "SupplierBankID",
        "BankID",
        "AccountNo",
        "AccountName",
        "IBAN",
        "SwiftCode",
        "IsDefault",
    )

    SupplierBankID: int | None = None
    SupplierID: int | None = None
    BankID: int | None = None
    AccountNo: str | None = None
    AccountName: str | None = None
    IBAN: str | None = None
    SwiftCode: str | None = None
    IsDefault: bool = False


class SupplierDetail(BaseModel):
    supplier: Supplier
    contacts: list[SupplierContact] = Field(default_factory=list)
    bank_details: list[SupplierBankDetail] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)


class Property(WireRecord):
    id_field: ClassVar[str] = "PropertyID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "PropertyNo",
        "PropertyName",
        "ProjectStartDate",
        "ProjectCompletionDate",
        "OwnerShipID",
        "TitleDeed",
        "CommunityID",
        "CountryID",
        "CityID",
        "PlotNo",
        "PlotSize",
        "BuiltUpArea",
        "NoOfFloors",
        "NoOfUnits",
        "Remark",
    )

    PropertyID: int | None = None
    PropertyNo: str | None = None
    PropertyName: str | None = None
    ProjectStartDate: WireDate = None
    ProjectCompletionDate: WireDate = None
    OwnerShipID: int | None = None
    TitleDeed: str | None = None
    CommunityID: int | None = None
    CountryID: int | None = None
    CityID: int | None = None
    PlotNo: str | None = None
    PlotSize: float | None = None
    BuiltUpArea: float | None = None
    NoOfFloors: int | None = None
    NoOfUnits: int | None = None
    Remark: str | None = None


class PropertyDetail(BaseModel):
    property: Property
    attachments: list[Attachment] = Field(default_factory=list)


class Charge(WireRecord):
    id_field: ClassVar[str] = "ChargesID"
    writable_fields: ClassVar[tuple[str, ...]] = (
        "ChargesCode",
        "ChargesName",
        "ChargesCategoryID",
        "ChargeAmount",
        "TaxPercentage",
        "IsActive",
        "Remark",
    )

    ChargesID: int | None = None
    ChargesCode: str | None = None
    ChargesName: str | None = None
    ChargesCategoryID: int | None = None
    ChargeAmount: float | None = None
    TaxPercentage: float | None = None
    IsActive: bool = True
    Remark: str | None = None


class DocType(WireRecord):
    id_field: ClassVar[str] = "DocTypeID"
    writable_fields: ClassVar[tuple[str, ...]] = ("Description", "IsActive")

    DocTypeID: int | None = None
    Description: str | None = None
    IsActive: bool = True


__all__ = [
    "AccountingPeriod",
    "Attachment",
    "Charge",
    "Contract",
    "ContractCharge",
    "ContractDetail",
    "ContractUnit",
    "DocType",
    "FiscalYear",
    "Invoice",
    "InvoiceDetail",
    "LedgerPosting",
    "Property",
    "PropertyDetail",
    "Receipt",
    "ReceiptAllocation",
    "ReceiptDetail",
    "Supplier",
    "SupplierBankDetail",
    "SupplierContact",
    "SupplierDetail",
    "SupplierType",
    "WireDate",
    "WireRecord",
]
