from datetime import date, datetime
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import pytest
import requests

from account_tracking.config import AuditSettings
from account_tracking.errors import ConfigurationError, UpstreamError
from directory.client import ApiError, AuthenticationError, DirectoryClient, NetworkError
from directory.models import Address, Employee, StatusChange
from directory.service import (
    EMPLOYEE_PATH,
    EMPLOYEE_SEARCH_PATH,
    STATUS_CHANGES_PATH,
    EmployeeService,
    StatusChangeService,
    clamp_limit,
    clamp_offset,
)


BASE_URL = "https://directory.example.org"


def response(status_code, payload=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


def client_returning(resp):
    session = Mock()
    if isinstance(resp, Exception):
        session.get.side_effect = resp
    else:
        session.get.return_value = resp
    return DirectoryClient(BASE_URL, "secret", session=session), session


# ----------------------------
# Models
# ----------------------------

def test_employee_from_api():
    employee = Employee.from_api(
        {
            "employeeId": "12345",
            "firstName": "Pat",
            "lastName": "Example",
            "email": "pat@example.org",
            "workPhone": "555-0100",
            "location": {
                "code": "ALB1",
                "locationDescription": "Albany HQ",
                "address": {"addr1": "1 Main St", "city": "Albany", "state": "NY", "zip5": "12207", "zip4": "0001"},
                "respCenterHead": {"code": "OGS01", "name": "Office of General Services"},
            },
        }
    )
    assert employee.employee_id == 12345
    assert employee.display_name == "Pat Example"
    assert employee.contact_info == "pat@example.org, 555-0100"
    assert employee.location_display_name == "Albany HQ"
    assert employee.resp_center_display_name == "Office of General Services"
    assert employee.location.address.full_address == "1 Main St, Albany, NY, 12207-0001"


def test_employee_without_location():
    employee = Employee.from_api({"employeeId": None, "fullName": "Sam Sample"})
    assert employee.employee_id is None
    assert employee.display_name == "Sam Sample"
    assert employee.resp_center_display_name is None
    assert employee.location_display_name is None


def test_address_formatting():
    assert Address(zip5="12207").full_zip == "12207"
    assert Address().full_zip is None
    assert Address(formatted_address_with_county="1 Main St, Albany County").full_address == "1 Main St, Albany County"


def test_status_change_from_api():
    change = StatusChange.from_api(
        {"employeeId": 7, "fullName": "Lee Tester", "transactionCode": "EMP", "postDateTime": "2025-03-10T09:15:00"}
    )
    assert change.transaction_code == "EMP"
    assert change.post_date_time == datetime(2025, 3, 10, 9, 15, tzinfo=ZoneInfo("America/New_York"))
    assert change.transaction_description == "Termination"
    assert change.is_known_transaction
    assert change.employee.employee_id == 7


def test_status_change_with_bad_timestamp():
    change = StatusChange.from_api({"employeeId": 7, "transactionCode": "ZZZ", "postDateTime": "not a date"})
    assert change.post_date_time is None
    assert change.transaction_description == "ZZZ"
    assert not change.is_known_transaction


# ----------------------------
# Client
# ----------------------------

def test_get_sends_api_key_and_returns_json():
    client, session = client_returning(response(200, {"success": True}))
    assert client.get("/api/v1/ping", {"a": 1}) == {"success": True}

    args, kwargs = session.get.call_args
    assert args[0] == f"{BASE_URL}/api/v1/ping"
    assert kwargs["params"] == {"a": 1}
    assert kwargs["headers"]["X-API-Key"] == "secret"
    assert kwargs["headers"]["Accept"] == "application/json"
    assert kwargs["timeout"] == 30


def test_not_found_is_none():
    client, _ = client_returning(response(404, text="missing"))
    assert client.get("/api/v1/employee/1") is None


@pytest.mark.parametrize(
    "resp, error, message",
    [
        (response(401), AuthenticationError, "API authentication failed"),
        (response(418), ApiError, "Client error: 418"),
        (response(503), ApiError, "Server error: 503"),
        (response(302), ApiError, "Unexpected response: 302"),
        (response(200, ValueError("bad json")), ApiError, "Invalid JSON response"),
        (requests.Timeout("slow"), NetworkError, "Request timeout"),
        (requests.ConnectionError("down"), NetworkError, "Connection failed"),
        (requests.RequestException("odd"), ApiError, "Unexpected error: odd"),
    ],
)
def test_failures_raise_upstream_errors(resp, error, message):
    client, _ = client_returning(resp)
    with pytest.raises(error, match=message) as excinfo:
        client.get("/api/v1/anything")
    assert isinstance(excinfo.value, UpstreamError)
    assert excinfo.value.user_message().startswith("Employee directory is temporarily unavailable")


def test_from_settings_requires_url_and_key():
    with pytest.raises(ConfigurationError, match="base URL is required; Employee directory API key is required"):
        DirectoryClient.from_settings(AuditSettings())
    with pytest.raises(ConfigurationError, match="must be a valid URL"):
        DirectoryClient.from_settings(AuditSettings(directory_base_url="directory", directory_api_key="k"))

    client = DirectoryClient.from_settings(AuditSettings(directory_base_url=BASE_URL, directory_api_key="k"))
    assert client.base_url == BASE_URL


# ----------------------------
# Services
# ----------------------------

def test_status_changes_for_date_range():
    client = Mock()
    client.get.return_value = {
        "success": True,
        "result": [{"employeeId": "1", "transactionCode": "APP"}, {"employeeId": "2", "transactionCode": "PHO"}],
    }

    changes = StatusChangeService(client).changes_for_date_range(date(2025, 3, 10), datetime(2025, 3, 11, 23, 59))

    client.get.assert_called_once_with(STATUS_CHANGES_PATH, {"from": "2025-03-10", "to": "2025-03-11"})
    assert [c.employee.employee_id for c in changes] == [1, 2]


@pytest.mark.parametrize("payload", [None, {"success": False, "result": [{"employeeId": "1"}]}])
def test_unsuccessful_status_change_response_is_empty(payload):
    client = Mock()
    client.get.return_value = payload
    assert StatusChangeService(client).changes_for_date_range(date(2025, 3, 10)) == []
    client.get.assert_called_once_with(STATUS_CHANGES_PATH, {"from": "2025-03-10"})


def test_employee_search_clamps_paging():
    client = Mock()
    client.get.return_value = {"success": True, "result": [{"employeeId": "5", "fullName": "Five"}]}
    service = EmployeeService(client)

    found = service.search("  Five ", limit=5000, offset=-3)
    client.get.assert_called_once_with(EMPLOYEE_SEARCH_PATH, {"limit": 1000, "offset": 0, "term": "Five"})
    assert found[0].display_name == "Five"

    client.get.reset_mock()
    service.search("", limit=0)
    client.get.assert_called_once_with(EMPLOYEE_SEARCH_PATH, {"limit": 20, "offset": 0})


def test_find_by_id():
    client = Mock()
    client.get.return_value = {"success": True, "employee": {"employeeId": "42", "fullName": "Forty Two"}}
    service = EmployeeService(client)

    employee = service.find_by_id(" 42 ")
    client.get.assert_called_once_with(EMPLOYEE_PATH.format(employee_id="42"))
    assert employee.employee_id == 42

    assert service.find_by_id("") is None
    client.get.return_value = None
    assert service.find_by_id(43) is None


def test_clamps():
    assert clamp_limit(-1) == 20
    assert clamp_limit("50") == 50
    assert clamp_limit("x") == 20
    assert clamp_offset("7") == 7
    assert clamp_offset(None) == 0


def test_post_times_with_and_without_offset_are_comparable():
    chicago = ZoneInfo("America/Chicago")
    naive = StatusChange.from_api({"employeeId": 7, "postDateTime": "2025-03-10T22:00:00"}, chicago)
    utc = StatusChange.from_api({"employeeId": 7, "postDateTime": "2025-03-11T01:30:00Z"}, chicago)

    assert naive.post_date_time == datetime(2025, 3, 10, 22, 0, tzinfo=chicago)
    assert utc.post_date_time.utcoffset().total_seconds() == 0
    assert max(naive.post_date_time, utc.post_date_time) is naive.post_date_time
