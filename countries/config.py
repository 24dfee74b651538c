from dataclasses import dataclass


@dataclass(frozen=True)
class RefreshConfig:
    """Endpoints, timeout and output path for one refresh pipeline.

    Built once from settings and handed to the source client, the engine and
    the renderer so none of them reads settings on its own.
    """

    countries_url: str
    rates_url: str
    base_currency: str = "USD"
    timeout: float = 12.0
    summary_image_path: str = "cache/summary.png"
    top_n: int = 5

    @classmethod
    def from_settings(cls, settings=None):
        if settings is None:
            from django.conf import settings
        conf = settings.COUNTRY_CACHE
        return cls(
            countries_url=conf["COUNTRIES_URL"],
            rates_url=conf["RATES_URL"],
            base_currency=conf.get("BASE_CURRENCY", "USD"),
            timeout=conf.get("EXTERNAL_TIMEOUT_MS", 12000) / 1000.0,
            summary_image_path=conf["SUMMARY_IMAGE_PATH"],
            top_n=conf.get("SUMMARY_TOP_N", 5),
        )

    def rates_url_for(self, base_currency: str) -> str:
        """Rate endpoint for ``base_currency``; URLs without ``{base}`` are used as-is."""
        return self.rates_url.replace("{base}", base_currency)


def get_config():
    return RefreshConfig.from_settings()
