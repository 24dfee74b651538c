"""
Refresh pipeline: fetch the catalog and the rate table, then rewrite the
cache in one transaction.

Nothing is written unless both fetches succeed. Entities and the provenance
record share a single timestamp per refresh. The summary image is rendered
only after the transaction commits, in the background, and its outcome never
reaches the caller.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError

from .config import get_config
from .estimation import estimate
from .exceptions import ExternalUnavailableError, StorageFailureError
from .rendering import SummaryRenderer
from .sources import CountrySourceClient, SourceUnavailable
from .store import CacheStore, UpsertOutcome
from . import utils

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    inserted: int
    updated: int
    last_refreshed_at: datetime

    def as_dict(self):
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "last_refreshed_at": self.last_refreshed_at.isoformat(),
        }


def normalize_record(item):
    """Catalog record -> (name, attributes) without the derived fields."""
    population = item.get("population")
    return utils.clean_text(item["name"]), {
        "capital": utils.clean_text(item.get("capital")),
        "region": utils.clean_text(item.get("region")),
        "population": population if population is not None else 0,
        "currency_code": utils.first_currency_code(item.get("currencies")),
        "flag_url": utils.clean_text(item.get("flag")),
    }


class RefreshEngine:

    def __init__(self, config, client=None, store=None, renderer=None, clock=utils.get_now):
        self.config = config
        self._owns_client = client is None
        self.client = client or CountrySourceClient(config)
        self.store = store or CacheStore()
        self.renderer = renderer or SummaryRenderer.from_config(config)
        self.clock = clock

    def refresh(self):
        countries_data, rates = self._fetch_sources()

        records = self._dedupe(countries_data)
        now = self.clock()
        inserted = updated = 0

        logger.info("Refreshing %d countries against %d rates", len(records), len(rates))
        try:
            with self.store.begin_unit_of_work():
                for name, attributes in records:
                    exchange_rate, estimated_gdp = estimate(
                        attributes["population"], attributes["currency_code"], rates
                    )
                    outcome = self.store.upsert_entity(name, {
                        **attributes,
                        "exchange_rate": exchange_rate,
                        "estimated_gdp": estimated_gdp,
                        "last_refreshed_at": now,
                    })
                    if outcome is UpsertOutcome.INSERTED:
                        inserted += 1
                    else:
                        updated += 1

                self.store.set_provenance(now)
                self.store.after_commit(self._dispatch_render)
        except DatabaseError as exc:
            logger.exception("Refresh rolled back")
            raise StorageFailureError(f"Could not write refreshed data: {exc}") from exc

        logger.info("Refresh committed: %d inserted, %d updated", inserted, updated)
        return RefreshResult(inserted=inserted, updated=updated, last_refreshed_at=now)

    def _fetch_sources(self):
        # Both fetches run concurrently and both finish before any write.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="refresh-fetch") as pool:
            countries_future = pool.submit(self.client.fetch_entities)
            rates_future = pool.submit(self.client.fetch_rates, self.config.base_currency)
        try:
            return countries_future.result(), rates_future.result()
        except SourceUnavailable as exc:
            raise ExternalUnavailableError(str(exc)) from exc

    @staticmethod
    def _dedupe(countries_data):
        # Same name in different case is one entity; the last record wins.
        merged = {}
        for item in countries_data:
            name, attributes = normalize_record(item)
            merged[utils.name_key(name)] = (name, attributes)
        return list(merged.values())

    def close(self):
        if self._owns_client:
            self.client.close()

    def _dispatch_render(self):
        self.renderer.schedule(self.store)


def build_refresh_engine(config=None):
    return RefreshEngine(config or get_config())
