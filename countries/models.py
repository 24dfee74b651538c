from django.db import models
from django.db.models.functions import Lower


class Country(models.Model):
    # id: auto-generated, doubles as insertion order
    # name: natural key, unique case-insensitively (see Meta.constraints)
    name = models.CharField(max_length=200)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    # population: defaults to 0 when the catalog omits it
    population = models.BigIntegerField(default=0)
    # currency_code: first listed currency of the catalog record, if any
    currency_code = models.CharField(max_length=10, null=True, blank=True, db_index=True)
    # exchange_rate: null when the code is missing from the rate table
    exchange_rate = models.FloatField(null=True, blank=True)
    # estimated_gdp: computed; 0 without a currency, null when not computable
    estimated_gdp = models.FloatField(null=True, blank=True, db_index=True)
    flag_url = models.CharField(max_length=500, null=True, blank=True)
    # last_refreshed_at: timestamp of the refresh that last wrote this row
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['id']
        verbose_name_plural = 'countries'
        constraints = [
            models.UniqueConstraint(Lower('name'), name='country_name_ci_unique'),
        ]

    def __str__(self):
        return self.name


class RefreshStatus(models.Model):
    """Single-row provenance record for the last committed refresh."""

    SINGLETON_ID = 1

    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = 'refresh status'

    def __str__(self):
        if self.last_refreshed_at:
            return f"Last refreshed at {self.last_refreshed_at.isoformat()}"
        return "Never refreshed"
