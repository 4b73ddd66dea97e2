import pytest

from data.moex_api import (
    MoexAPI, MoexAPIError, ApiStatusError, NotFoundError, TransportError
)
from models.result import ErrorKind

from conftest import FakeResponse, FakeSession, iss_block, security_payload


SECURITIES = iss_block(["SECID", "SECNAME"], ["SU26227RMFS7", "ОФЗ-ПД 26227"])
MARKETDATA = iss_block(["SECID", "LAST"], ["SU26227RMFS7", 97.1])


def make_api(**responses):
    session = FakeSession(**responses)
    return MoexAPI(session=session), session


def test_security_request_url_and_params():
    api, session = make_api(security=security_payload(SECURITIES, MARKETDATA))
    data = api.fetch_security_data("SU26227RMFS7")

    url, params, timeout = session.calls[0]
    assert url == "https://iss.moex.com/iss/engines/stock/markets/bonds/securities/SU26227RMFS7.json"
    assert params == {"iss.meta": "off"}
    assert timeout == 10
    assert data.securities.first_row_value("SECNAME") == "ОФЗ-ПД 26227"
    assert data.marketdata.first_row_value("LAST") == 97.1


def test_ticker_is_percent_encoded():
    api, session = make_api(security=security_payload(SECURITIES, MARKETDATA))
    api.fetch_security_data("ОФЗ 26227/x")
    url = session.calls[0][0]
    assert "%D0%9E%D0%A4%D0%97%2026227%2Fx.json" in url


def test_bondization_request_url_and_params():
    api, session = make_api(bondization={"coupons": iss_block(["coupondate"], ["2027-01-01"])})
    result = api.fetch_bondization("RU000A105WR3")

    url, params, _ = session.calls[0]
    assert url == "https://iss.moex.com/iss/securities/RU000A105WR3/bondization.json"
    assert params == {"iss.meta": "off", "limit": "unlimited"}
    assert len(result.coupons) == 1
    assert result.amortizations.is_empty
    assert result.offers.is_empty


def test_non_200_is_api_status():
    api, _ = make_api(security=FakeResponse(503))
    with pytest.raises(ApiStatusError) as exc:
        api.fetch_security_data("X")
    assert exc.value.status_code == 503
    assert exc.value.kind is ErrorKind.API_STATUS
    assert str(exc.value) == "Ошибка API: 503"


def test_bondization_status_message_names_endpoint():
    api, _ = make_api(bondization=FakeResponse(500))
    with pytest.raises(ApiStatusError, match=r"bondization"):
        api.fetch_bondization("X")


def test_missing_block_is_not_found():
    api, _ = make_api(security=security_payload(securities=SECURITIES))
    with pytest.raises(NotFoundError) as exc:
        api.fetch_security_data("X")
    assert exc.value.block == "marketdata"
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_empty_rows_is_not_found():
    empty = iss_block(["SECID"])
    api, _ = make_api(security=security_payload(empty, empty))
    with pytest.raises(NotFoundError):
        api.fetch_security_data("UNKNOWN", required=("securities",))


def test_only_required_blocks_are_checked():
    api, _ = make_api(security=security_payload(securities=SECURITIES))
    data = api.fetch_security_data("X", required=("securities",))
    assert data.marketdata.is_empty


def test_connection_failure_is_transport(connection_error):
    api, _ = make_api(security=connection_error)
    with pytest.raises(TransportError) as exc:
        api.fetch_security_data("X")
    assert exc.value.kind is ErrorKind.TRANSPORT
    assert isinstance(exc.value, MoexAPIError)
    assert isinstance(exc.value, ConnectionError)


def test_malformed_json_is_transport():
    api, _ = make_api(security=FakeResponse(200, raise_json=True))
    with pytest.raises(TransportError):
        api.fetch_security_data("X")


def test_settings_override_base_url_and_user_agent():
    session = FakeSession(security=security_payload(SECURITIES, MARKETDATA))
    settings = {"base_url": "http://localhost/iss", "timeout": 3, "user_agent": "test/0"}
    api = MoexAPI(settings=settings, session=session)
    api.fetch_security_data("X")
    url, _, timeout = session.calls[0]
    assert url.startswith("http://localhost/iss/engines/")
    assert timeout == 3
    assert session.headers["User-Agent"] == "test/0"
