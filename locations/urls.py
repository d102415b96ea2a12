from django.urls import path
from . import views

urlpatterns = [
    path("", views.location_list, name="location_list"),
    path("nearby/", views.nearby, name="nearby_locations"),
    path("visit/", views.visit, name="log_visit"),
    path("rate/", views.rate, name="rate_location"),
    path("establishments/", views.establishments, name="search_establishments"),
    path("<int:location_id>/", views.location_detail, name="location_detail"),
    path("<int:location_id>/analytics/", views.analytics, name="location_analytics"),
]
