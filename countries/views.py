import logging
import os
from contextlib import closing

from django.db import DatabaseError, connection
from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .config import get_config
from .exceptions import NotFoundError, ValidationError
from .models import Country
from .refresh import build_refresh_engine
from .serializers import CountryQuerySerializer, CountrySerializer
from .store import CacheStore

logger = logging.getLogger(__name__)


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, then upsert the cache in one transaction.
    503 if either source fails (cache untouched), 500 if the write rolls back.
    """
    with closing(build_refresh_engine()) as engine:
        result = engine.refresh()
    return Response(result.as_dict(), status=status.HTTP_200_OK)


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters:
      - region (exact), currency (exact 3-letter code)
    Sorting:
      - ?sort=gdp_desc | gdp_asc | name_asc | population_desc
    Paging:
      - ?page=<n >= 1>&limit=<1..200>, default page 1, limit 50
    Default:
      - Ordered by id ascending.
    """
    params = CountryQuerySerializer(data=request.query_params)
    if not params.is_valid():
        raise ValidationError(params.errors)
    query = params.validated_data

    qs = Country.objects.all()
    if "region" in query:
        qs = qs.filter(region=query["region"])
    if "currency" in query:
        qs = qs.filter(currency_code=query["currency"])
    qs = qs.order_by(*params.ordering())

    limit = query["limit"]
    offset = (query["page"] - 1) * limit
    serializer = CountrySerializer(qs[offset:offset + limit], many=True)
    return Response(serializer.data)


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> 404 JSON if not found
    DELETE /countries/:name -> delete, return 204 or 404
    """
    country = Country.objects.filter(name__iexact=name.strip()).first()
    if country is None:
        raise NotFoundError()

    if request.method == 'GET':
        serializer = CountrySerializer(country)
        return Response(serializer.data)
    else:  # DELETE
        country.delete()
        logger.info("Deleted country %s", country.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_status(request):
    """
    GET /status -> { total_countries, last_refreshed_at }
    last_refreshed_at is the provenance timestamp of the last committed refresh (or null)
    """
    store = CacheStore()
    last = store.get_provenance()
    return Response({
        "total_countries": store.count_entities(),
        "last_refreshed_at": last.isoformat() if last else None,
    })


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the summary image written after the last refresh.
    If not generated yet, return 404 JSON.
    """
    path = get_config().summary_image_path
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(open(path, 'rb'), content_type='image/png')


@api_view(['GET'])
def health(request):
    """GET /health -> pings the database."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        logger.warning("Health check failed: %s", exc)
        return Response({"ok": False, "db": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response({"ok": True})
