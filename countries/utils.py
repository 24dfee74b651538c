from datetime import datetime, timezone


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)


def clean_text(value):
    """Trim a catalog string; blank or missing values become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def first_currency_code(currencies):
    """Code of the first listed currency, or None."""
    if not currencies:
        return None
    first = currencies[0] or {}
    return clean_text(first.get("code"))


def name_key(name):
    """Case-insensitive natural key for a country name."""
    return name.strip().lower()
