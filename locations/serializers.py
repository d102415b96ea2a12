import math

from rest_framework import serializers

from .geo import DEFAULT_RADIUS_KM, MAX_RADIUS_KM, MIN_RADIUS_KM
from .models import Location, Rating, Visit


class LatitudeField(serializers.FloatField):
    def __init__(self, **kwargs):
        kwargs.setdefault("min_value", -90)
        kwargs.setdefault("max_value", 90)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if not math.isfinite(value):
            self.fail("invalid")
        return value


class LongitudeField(LatitudeField):
    def __init__(self, **kwargs):
        kwargs.setdefault("min_value", -180)
        kwargs.setdefault("max_value", 180)
        super().__init__(**kwargs)


class LocationSerializer(serializers.ModelSerializer):
    latitude = LatitudeField()
    longitude = LongitudeField()
    type = serializers.CharField(max_length=50, required=False, allow_null=True)

    class Meta:
        model = Location
        fields = "__all__"

    def validate_type(self, value):
        # null falls back to the model default instead of violating NOT NULL
        return value or "point_of_interest"


class LocationStatsSerializer(LocationSerializer):
    average_rating = serializers.FloatField(read_only=True)
    visit_count = serializers.IntegerField(read_only=True)


class NearbyLocationSerializer(LocationStatsSerializer):
    distance = serializers.FloatField(read_only=True)


class VisitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Visit
        fields = ["id", "location", "user", "type", "created_at"]
        read_only_fields = fields


class RatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rating
        fields = ["id", "user", "location", "rating", "comment", "created_at", "updated_at"]
        read_only_fields = fields


class NearbyQuerySerializer(serializers.Serializer):
    lat = LatitudeField()
    lng = LongitudeField()
    radius = serializers.FloatField(
        required=False,
        default=DEFAULT_RADIUS_KM,
        min_value=MIN_RADIUS_KM,
        max_value=MAX_RADIUS_KM,
    )


class LogVisitSerializer(serializers.Serializer):
    latitude = LatitudeField()
    longitude = LongitudeField()
    name = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=[Visit.VIEWED, Visit.SELECTED, Visit.VISITED])


class RateLocationSerializer(serializers.Serializer):
    location_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_location_id(self, value):
        if not Location.objects.filter(pk=value).exists():
            raise serializers.ValidationError("The selected location does not exist.")
        return value


class EstablishmentQuerySerializer(serializers.Serializer):
    lat = LatitudeField()
    lng = LongitudeField()
    radius = serializers.IntegerField(required=False, default=5000, min_value=1, max_value=50000)  # meters
    categories = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(required=False, default=20, min_value=1, max_value=100)
