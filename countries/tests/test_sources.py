from unittest import mock

import pytest
import requests

from countries.sources import CountrySourceClient, SourceUnavailable

from .conftest import json_response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def client(config, session):
    return CountrySourceClient(config, session=session)


def test_fetch_entities(client, session, catalog):
    catalog[0]["name"] = "  Nigeria "
    session.get.return_value = json_response(catalog)

    records = client.fetch_entities()

    session.get.assert_called_once_with("http://catalog.test/countries", timeout=5.0)
    assert [r["name"] for r in records] == ["Nigeria", "Ghana"]
    assert records[0]["currencies"][0]["code"] == "NGN"


def test_fetch_entities_accepts_missing_optional_fields(client, session):
    session.get.return_value = json_response([
        {"name": "Antarctica", "region": "Polar", "currencies": None},
        {"name": "Bouvet Island", "capital": None, "population": None},
    ])

    records = client.fetch_entities()

    assert len(records) == 2
    assert records[1].get("population") is None


@pytest.mark.parametrize("payload", [
    {"message": "Not Found"},
    [{"capital": "Nowhere"}],
    [{"name": "Nigeria"}, {"name": "Ghana", "population": "lots"}],
    [{"name": "Nigeria", "population": -5}],
    [{"name": "Bigland", "population": 10 ** 19}],
])
def test_fetch_entities_rejects_malformed_payload(client, session, payload):
    session.get.return_value = json_response(payload)

    with pytest.raises(SourceUnavailable) as excinfo:
        client.fetch_entities()
    assert excinfo.value.source == "countries API"


def test_fetch_entities_error_status(client, session):
    session.get.return_value = json_response({"message": "boom"}, status_code=500)

    with pytest.raises(SourceUnavailable):
        client.fetch_entities()


@pytest.mark.parametrize("error", [
    requests.Timeout("read timed out"),
    requests.ConnectionError("connection refused"),
])
def test_fetch_entities_network_failure(client, session, error):
    session.get.side_effect = error

    with pytest.raises(SourceUnavailable):
        client.fetch_entities()


def test_fetch_entities_invalid_json(client, session):
    resp = requests.Response()
    resp.status_code = 200
    resp._content = b"<html>not json</html>"
    session.get.return_value = resp

    with pytest.raises(SourceUnavailable):
        client.fetch_entities()


def test_fetch_rates(client, session, rates):
    session.get.return_value = json_response({"result": "success", "base_code": "EUR", "rates": rates})

    assert client.fetch_rates("EUR") == rates
    session.get.assert_called_once_with("http://rates.test/latest/EUR", timeout=5.0)


@pytest.mark.parametrize("payload", [
    {"result": "error", "error-type": "unsupported-code"},
    {"rates": {"NGN": "n/a"}},
    {"rates": {"NGN": None}},
    {"rates": ["NGN", 1600.23]},
])
def test_fetch_rates_rejects_malformed_payload(client, session, payload):
    session.get.return_value = json_response(payload)

    with pytest.raises(SourceUnavailable) as excinfo:
        client.fetch_rates("USD")
    assert excinfo.value.source == "exchange rates API"


def test_fetch_rates_error_status(client, session):
    session.get.return_value = json_response({}, status_code=503)

    with pytest.raises(SourceUnavailable):
        client.fetch_rates("USD")


def test_rates_url_without_placeholder_is_used_as_is(config, session, rates):
    from dataclasses import replace

    client = CountrySourceClient(replace(config, rates_url="http://rates.test/fixed"), session=session)
    session.get.return_value = json_response({"rates": rates})

    client.fetch_rates("USD")

    session.get.assert_called_once_with("http://rates.test/fixed", timeout=5.0)


def test_close_releases_own_session(config):
    client = CountrySourceClient(config)

    with mock.patch.object(client.session, "close") as close:
        client.close()

    close.assert_called_once_with()


def test_close_leaves_injected_session_open(client, session):
    client.close()

    session.close.assert_not_called()
