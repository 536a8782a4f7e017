from unittest import mock

import httpx
import pytest

from erp_core.exceptions import GstinLookupError, InvalidGstinError
from erp_core.services.gstin import (lookup_gstin, map_api_record,
                                     normalize_gstin)

from .utils import make_company

GSTIN = "29ABCDE1234F1Z5"

API_RECORD = {
    "gstin": GSTIN,
    "lgnm": "SHREE TIMBERS PRIVATE LIMITED",
    "tradeNam": "SHREE TIMBERS",
    "rgdt": "01/07/2017",
    "nba": ["Wholesale Business", "Factory / Manufacturing"],
    "dty": "Regular",
    "ctb": "Private Limited Company",
    "stj": "LGSTO 045 - Bengaluru",
    "sts": "Active",
    "pradr": {
        "addr": {
            "bno": "12",
            "bnm": "Timber House",
            "st": "Mill Road",
            "loc": "Peenya",
            "dst": "Bengaluru Urban",
            "stcd": "Karnataka",
            "pncd": 560058,
        }
    },
}


@pytest.fixture
def api_settings(settings):
    settings.GSTIN_API_KEY = "secret"
    settings.GSTIN_CLIENT_ID = "client"
    return settings


def _response(payload):
    response = mock.Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.mark.parametrize("value", ["", "29ABCDE1234F1Z", "29ABCDE1234F1X5", "AAABCDE1234F1Z5"])
def test_malformed_gstin_is_rejected(value):
    with pytest.raises(InvalidGstinError):
        normalize_gstin(value)


def test_gstin_is_upper_cased():
    assert normalize_gstin(" 29abcde1234f1z5 ") == GSTIN


@pytest.mark.django_db
def test_registered_company_is_found_first(api_settings):
    company = make_company("Shree Timbers", gstin=GSTIN, state="Karnataka")

    with mock.patch("erp_core.services.gstin.httpx.get") as get:
        result = lookup_gstin(GSTIN.lower())

    get.assert_not_called()
    assert result.source == "database"
    assert result.data["id"] == company.pk
    assert result.data["state"] == "Karnataka"


@pytest.mark.django_db
def test_registry_answer_is_mapped(api_settings):
    with mock.patch(
        "erp_core.services.gstin.httpx.get", return_value=_response({"data": API_RECORD})
    ) as get:
        result = lookup_gstin(GSTIN)

    assert get.call_args.kwargs["params"] == {"gstin": GSTIN}
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"
    assert result.source == "api"
    assert result.data["legal_name"] == "SHREE TIMBERS PRIVATE LIMITED"
    assert result.data["registration_date"] == "2017-07-01"
    assert result.data["pincode"] == "560058"


@pytest.mark.django_db
def test_registry_failure_raises(api_settings):
    with mock.patch(
        "erp_core.services.gstin.httpx.get",
        side_effect=httpx.ConnectError("unreachable"),
    ):
        with pytest.raises(GstinLookupError):
            lookup_gstin(GSTIN)

    with mock.patch(
        "erp_core.services.gstin.httpx.get",
        return_value=_response({"error": True, "message": "Invalid GSTIN"}),
    ):
        with pytest.raises(GstinLookupError):
            lookup_gstin(GSTIN)


@pytest.mark.django_db
def test_placeholder_when_registry_not_configured(settings):
    settings.GSTIN_API_KEY = ""

    with mock.patch("erp_core.services.gstin.httpx.get") as get:
        result = lookup_gstin(GSTIN)

    get.assert_not_called()
    assert result.source == "dummy"
    assert result.data["state"] == "Karnataka"
    assert result.data["gstin_state_code"] == "29"


def test_address_is_joined_from_parts():
    data = map_api_record(GSTIN, API_RECORD)
    assert data["address"] == "12, Timber House, Mill Road, Peenya, Bengaluru Urban, Karnataka"
    assert data["business_nature"] == "Wholesale Business"
    assert map_api_record(GSTIN, {})["registration_date"] is None
