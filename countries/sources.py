"""
Client for the two external data sources: the country catalog
(restcountries-style) and the exchange-rate table (open.er-api-style).

Every failure mode of a fetch, whether network, status or payload shape,
surfaces as ``SourceUnavailable``. There are no retries and no partial
results.
"""
import logging

import requests
from requests.exceptions import RequestException

from .serializers import RatesPayloadSerializer, SourceCountrySerializer

logger = logging.getLogger(__name__)


class SourceUnavailable(Exception):
    def __init__(self, source, reason):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not fetch data from {source}: {reason}")


class CountrySourceClient:

    def __init__(self, config, session=None):
        self.config = config
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self):
        """Release pooled connections of a session this client created."""
        if self._owns_session:
            self.session.close()

    def fetch_entities(self):
        """Return the validated catalog as a list of dicts."""
        payload = self._get_json(self.config.countries_url, "countries API")
        serializer = SourceCountrySerializer(data=payload, many=True)
        if not serializer.is_valid():
            raise SourceUnavailable("countries API", f"unexpected payload: {_first_error(serializer.errors)}")
        return serializer.validated_data

    def fetch_rates(self, base_currency):
        """Return ``{currency_code: rate}`` relative to ``base_currency``."""
        url = self.config.rates_url_for(base_currency)
        payload = self._get_json(url, "exchange rates API")
        serializer = RatesPayloadSerializer(data=payload)
        if not serializer.is_valid():
            raise SourceUnavailable("exchange rates API", f"unexpected payload: {_first_error(serializer.errors)}")
        return dict(serializer.validated_data["rates"])

    def _get_json(self, url, source):
        try:
            resp = self.session.get(url, timeout=self.config.timeout)
            resp.raise_for_status()
            return resp.json()
        except (RequestException, ValueError) as exc:
            logger.warning("Fetching %s from %s failed: %s", source, url, exc)
            raise SourceUnavailable(source, str(exc)) from exc


def _first_error(errors):
    # many=True yields one dict per record, mostly empty
    if isinstance(errors, list):
        return next((e for e in errors if e), errors)
    return errors
