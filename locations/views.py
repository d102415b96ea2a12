import logging

from django.conf import settings
from django.db.models import Avg
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .analytics import get_analytics
from .establishments import search_establishments
from .models import Location, Visit
from .nearby import find_nearby
from .serializers import (
    EstablishmentQuerySerializer,
    LocationSerializer,
    LocationStatsSerializer,
    LogVisitSerializer,
    NearbyLocationSerializer,
    NearbyQuerySerializer,
    RateLocationSerializer,
    RatingSerializer,
    VisitSerializer,
)
from .visits import log_visit, rate_location, record_visit

logger = logging.getLogger(__name__)


def _user_id(request):
    return request.user.id if request.user.is_authenticated else None


def _error(message):
    return Response({"error": message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(["GET", "POST"])
def location_list(request):
    if request.method == "GET":
        try:
            locations = Location.objects.order_by("id")
            return Response(LocationSerializer(locations, many=True).data)
        except Exception:
            logger.exception("Failed to fetch locations")
            return _error("Failed to fetch locations")

    serializer = LocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        location = serializer.save()
        user_id = _user_id(request)
        if user_id is not None:
            record_visit(location, Visit.CREATED, user_id)
    except Exception as e:
        logger.exception("Failed to create location")
        return _error(f"Failed to create location: {e}")

    return Response(LocationSerializer(location).data, status=status.HTTP_201_CREATED)


@api_view(["GET", "PUT", "PATCH", "DELETE"])
def location_detail(request, location_id):
    location = get_object_or_404(Location, pk=location_id)

    if request.method == "GET":
        try:
            location.average_rating = location.ratings.aggregate(avg=Avg("rating"))["avg"] or 0
            location.visit_count = location.visits.count()
            user_id = _user_id(request)
            if user_id is not None:
                record_visit(location, Visit.VIEWED, user_id)
            return Response(LocationStatsSerializer(location).data)
        except Exception:
            logger.exception("Failed to fetch location id=%s", location_id)
            return _error("Failed to fetch location")

    if request.method == "DELETE":
        try:
            location.delete()
        except Exception:
            logger.exception("Failed to delete location id=%s", location_id)
            return _error("Failed to delete location")
        return Response(status=status.HTTP_204_NO_CONTENT)

    # PUT and PATCH both apply only the fields sent
    serializer = LocationSerializer(location, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        serializer.save()
    except Exception:
        logger.exception("Failed to update location id=%s", location_id)
        return _error("Failed to update location")
    return Response(serializer.data)


@api_view(["GET"])
@permission_classes([AllowAny])
def nearby(request):
    logger.info("Nearby location request received params=%s", dict(request.query_params))
    query = NearbyQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

    params = query.validated_data
    result = find_nearby(
        params["lat"],
        params["lng"],
        params["radius"],
        strategy=settings.LOCATIONS_NEARBY_STRATEGY,
    )

    response = Response(NearbyLocationSerializer(result.locations, many=True).data)
    if result.degraded:
        response["X-Nearby-Degraded"] = "true"
    return response


@api_view(["POST"])
@permission_classes([AllowAny])
def visit(request):
    serializer = LogVisitSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        location, visit_row, _ = log_visit(
            data["latitude"],
            data["longitude"],
            data["name"],
            data["type"],
            user_id=_user_id(request),
        )
    except Exception as e:
        logger.exception("Location visit logging error data=%s", dict(request.data))
        return _error(f"Failed to log visit: {e}")

    return Response(
        {
            "message": "Visit logged successfully",
            "location": LocationSerializer(location).data,
            "visit": VisitSerializer(visit_row).data,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def rate(request):
    serializer = RateLocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        rating, _ = rate_location(
            data["location_id"],
            data["rating"],
            data.get("comment"),
            user_id=request.user.id,
        )
    except Exception as e:
        logger.exception("Failed to rate location data=%s", dict(request.data))
        return _error(f"Failed to rate location: {e}")

    return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
def analytics(request, location_id):
    location = get_object_or_404(Location, pk=location_id)
    try:
        data = get_analytics(location)
    except Exception:
        logger.exception("Failed to get location analytics id=%s", location_id)
        return _error("Failed to get location analytics")

    data["location"] = LocationSerializer(location).data
    return Response(data)


@api_view(["GET"])
def establishments(request):
    query = EstablishmentQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

    params = query.validated_data
    data = search_establishments(
        params["lat"],
        params["lng"],
        radius_m=params["radius"],
        categories=params.get("categories") or None,
        name=params.get("name") or None,
        limit=params["limit"],
    )
    return Response(data, status=status.HTTP_200_OK)
