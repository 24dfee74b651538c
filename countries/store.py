"""
Cache store access used by the refresh pipeline and the summary renderer.

Writes go through ``upsert_entity`` inside ``begin_unit_of_work``. The upsert
locks the row (``SELECT ... FOR UPDATE`` where the backend supports it) and
relies on the case-insensitive unique constraint; if a concurrent refresh
inserts the same name first, Django's get_or_create catches the
IntegrityError and re-reads the row. Whether the row was created comes from
that statement, not from state read earlier.
"""
import enum

from django.db import transaction

from .models import Country, RefreshStatus


class UpsertOutcome(enum.Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


MUTABLE_FIELDS = (
    "capital", "region", "population", "currency_code",
    "exchange_rate", "estimated_gdp", "flag_url", "last_refreshed_at",
)


class CacheStore:

    def begin_unit_of_work(self):
        """Atomic block: commits on clean exit, rolls back on any exception."""
        return transaction.atomic()

    def after_commit(self, callback):
        """Run ``callback`` once the current unit of work commits, never on rollback."""
        transaction.on_commit(callback, robust=True)

    def upsert_entity(self, name, attributes):
        unknown = set(attributes) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"not a mutable country field: {', '.join(sorted(unknown))}")

        _, created = Country.objects.update_or_create(
            name__iexact=name,
            defaults=attributes,
            create_defaults={"name": name, **attributes},
        )
        return UpsertOutcome.INSERTED if created else UpsertOutcome.UPDATED

    def set_provenance(self, refreshed_at):
        RefreshStatus.objects.update_or_create(
            pk=RefreshStatus.SINGLETON_ID,
            defaults={"last_refreshed_at": refreshed_at},
        )

    def get_provenance(self):
        status = RefreshStatus.objects.filter(pk=RefreshStatus.SINGLETON_ID).first()
        return status.last_refreshed_at if status else None

    def count_entities(self):
        return Country.objects.count()

    def top_n_by_estimated_gdp(self, n):
        return list(
            Country.objects
            .filter(estimated_gdp__isnull=False)
            .order_by("-estimated_gdp", "id")[:n]
        )
