"""
Error taxonomy for the country cache.

API-facing errors are DRF exceptions, so raising one from a view (or from
anything a view calls) produces the right status code. The handler below
renders all of them as ``{"error": ..., "details": ...}``.
"""
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.views import exception_handler


class CountryAPIError(APIException):
    error_title = "Internal server error"


class ValidationError(CountryAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid query parameters."
    default_code = "validation_failed"
    error_title = "Validation failed"


class NotFoundError(CountryAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "No country matches the given name."
    default_code = "not_found"
    error_title = "Country not found"


class ExternalUnavailableError(CountryAPIError):
    """An external fetch failed; the cache was not touched."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Could not fetch data from an external source."
    default_code = "external_unavailable"
    error_title = "External data source unavailable"


class StorageFailureError(CountryAPIError):
    """The refresh transaction failed and was rolled back."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not write the refreshed data."
    default_code = "storage_failure"
    error_title = "Internal server error"


class RenderError(Exception):
    """Summary image generation failed. Logged, never returned to a client."""


def country_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, CountryAPIError):
        title = exc.error_title
    elif isinstance(exc, DRFValidationError):
        title = ValidationError.error_title
    else:
        title = "Request failed"

    response.data = {"error": title, "details": exc.detail}
    return response
