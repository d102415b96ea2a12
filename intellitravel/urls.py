from django.urls import include, path

urlpatterns = [
    path("api/locations/", include("locations.urls")),
]
