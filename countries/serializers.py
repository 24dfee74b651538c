from rest_framework import serializers
from .models import Country

# BigIntegerField range
MAX_POPULATION = 2 ** 63 - 1


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


# --- External payloads ---

class SourceCurrencySerializer(serializers.Serializer):
    code = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class SourceCountrySerializer(serializers.Serializer):
    """One record of the country catalog. Only ``name`` is required."""
    name = serializers.CharField()
    capital = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    region = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    population = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=MAX_POPULATION)
    flag = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    currencies = SourceCurrencySerializer(many=True, required=False, allow_null=True)


class RatesPayloadSerializer(serializers.Serializer):
    rates = serializers.DictField(child=serializers.FloatField())


# --- Query parameters for GET /countries ---

class CountryQuerySerializer(serializers.Serializer):
    SORT_ORDERS = {
        "gdp_desc": ("-estimated_gdp", "id"),
        "gdp_asc": ("estimated_gdp", "id"),
        "name_asc": ("name", "id"),
        "population_desc": ("-population", "id"),
    }
    DEFAULT_LIMIT = 50
    MAX_LIMIT = 200

    region = serializers.CharField(required=False)
    currency = serializers.CharField(required=False)
    sort = serializers.ChoiceField(choices=list(SORT_ORDERS), required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_LIMIT, default=DEFAULT_LIMIT)

    def validate_currency(self, value):
        if len(value) != 3:
            raise serializers.ValidationError("must be a 3-letter ISO code (e.g., NGN)")
        return value

    def validate(self, data):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {key: "is not a valid filter" for key in sorted(unknown)}
            )
        return data

    def ordering(self):
        sort = self.validated_data.get("sort")
        if sort is None:
            return ("id",)
        return self.SORT_ORDERS[sort]
