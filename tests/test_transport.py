from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from lease_erp.clients import FailureKind, ReceiptClient
from lease_erp.clients.base import prepare_parameters
from lease_erp.core.envelope import RequestEnvelope
from lease_erp.core.errors import TransportError
from lease_erp.domain import Principal
from lease_erp.infrastructure import DispatchTransport, RecordingNotifier


def _transport(handler) -> DispatchTransport:
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return DispatchTransport("http://erp.test/api", http_client=http_client)


def test_execute_posts_envelope_to_entity_url():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"Status": 1, "Message": "", "data": [{"PeriodID": 3}]})

    transport = _transport(handler)
    response = transport.execute(
        "/Master/accountingPeriod", RequestEnvelope(mode=6, parameters={"FiscalYearID": 2})
    )

    assert seen["url"] == "http://erp.test/api/Master/accountingPeriod"
    assert seen["body"] == {"mode": 6, "parameters": {"FiscalYearID": 2}}
    assert response.ok
    assert response.rows() == [{"PeriodID": 3}]


def test_execute_keeps_operation_specific_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"Status": 1, "Message": "Receipt posted", "PostingID": 9, "VoucherNo": "RV-1", "table2": []},
        )

    response = _transport(handler).execute("/LeaseManagement/receipt", RequestEnvelope(mode=15))

    assert response.get("PostingID") == 9
    assert response.get("VoucherNo") == "RV-1"
    assert response.table(2) == []
    assert response.table(5) == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"detail": "boom"}),
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=[1, 2, 3]),
        httpx.Response(200, json={"Message": "no status"}),
        httpx.Response(200, json={"Status": 5, "Message": "odd"}),
    ],
)
def test_execute_raises_transport_error_for_bad_replies(response):
    transport = _transport(lambda request: response)

    with pytest.raises(TransportError):
        transport.execute("/Master/fiscalyear", RequestEnvelope(mode=3))


def test_execute_wraps_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        _transport(handler).execute("/Master/fiscalyear", RequestEnvelope(mode=3))


def test_transport_requires_absolute_base_url():
    with pytest.raises(ValueError):
        DispatchTransport("/api")


def test_prepare_parameters_coerces_wire_values():
    prepared = prepare_parameters({
        "LeaseReceiptID": "12",
        "PostingDate": date(2025, 3, 5),
        "Notes": None,
        "UnitsJSON": [{"UnitID": 1}],
        "LeaseReceiptIDs": ["1", 2],
        "IsActive": False,
    })

    assert prepared == {
        "LeaseReceiptID": 12,
        "PostingDate": "2025-03-05",
        "UnitsJSON": '[{"UnitID": 1}]',
        "LeaseReceiptIDs": [1, 2],
        "IsActive": False,
    }


def test_mutation_carries_principal_and_notifies_success():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"Status": 1, "Message": "Receipt deleted successfully"})

    notifier = RecordingNotifier()
    client = ReceiptClient(_transport(handler), Principal(5, "clerk"), notifier=notifier)
    result = client.delete_receipt(4)

    assert result.ok
    assert captured["parameters"] == {"LeaseReceiptID": 4, "CurrentUserID": 5, "CurrentUserName": "clerk"}
    assert notifier.successes == ["Receipt deleted successfully"]


def test_reads_do_not_send_audit_parameters_or_notify():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"Status": 1, "Message": "", "data": []})

    notifier = RecordingNotifier()
    client = ReceiptClient(_transport(handler), Principal(5, "clerk"), notifier=notifier)
    result = client.get_receipts_by_customer(8)

    assert result.ok and result.data == []
    assert "CurrentUserID" not in captured["parameters"]
    assert notifier.successes == [] and notifier.errors == []


def test_transport_failure_is_reported_as_retryable_message():
    notifier = RecordingNotifier()
    client = ReceiptClient(_transport(lambda request: httpx.Response(502)), notifier=notifier)

    result = client.get_receipt_by_id(1)

    assert not result.ok
    assert result.failure is FailureKind.TRANSPORT
    assert result.message == "Failed to load receipt. Please try again."
    assert notifier.errors == [result.message]


def test_domain_failure_surfaces_server_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": 0, "Message": "Cannot delete a posted receipt"})

    result = ReceiptClient(_transport(handler), notifier=RecordingNotifier()).delete_receipt(3)

    assert result.failure is FailureKind.DOMAIN
    assert result.message == "Cannot delete a posted receipt"
    assert result.validation_messages == []


def test_precondition_failure_carries_validation_messages():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "Status": 0,
                "Message": "Receipt is already posted",
                "ValidationMessages": ["Receipt is already posted", "Receipt must be approved before posting"],
                "CanPost": False,
            },
        )

    result = ReceiptClient(_transport(handler), notifier=RecordingNotifier()).post_receipt_to_gl(
        3, date(2025, 3, 3)
    )

    assert result.failure is FailureKind.PRECONDITION
    assert len(result.validation_messages) == 2
    assert result.get("CanPost") is False


def test_local_validation_sends_nothing():
    calls: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"Status": 1})

    notifier = RecordingNotifier()
    client = ReceiptClient(_transport(handler), notifier=notifier)

    missing_reason = client.reject_receipt(1, "  ")
    bad_id = client.delete_receipt("abc")
    cheque_without_number = client.create_receipt({
        "CustomerID": 1,
        "CompanyID": 1,
        "FiscalYearID": 1,
        "PaymentType": "Cheque",
        "ReceivedAmount": 100,
    })

    assert calls == []
    for result in (missing_reason, bad_id, cheque_without_number):
        assert result.failure is FailureKind.VALIDATION
    assert "Cheque number is required for cheque payments" in cheque_without_number.validation_messages
    assert notifier.errors[0] == "Rejection reason is required"


def test_unexpected_row_shape_is_a_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Status": 1, "data": [{"ReceivedAmount": "lots"}]})

    result = ReceiptClient(_transport(handler), notifier=RecordingNotifier()).get_all_receipts()

    assert result.failure is FailureKind.TRANSPORT
