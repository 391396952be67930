from django.urls import path

from itinerary_planner import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/itineraries", views.itinerary_plan_view, name="itinerary-plan"),
    path(
        "api/v1/itineraries/<int:itinerary_id>",
        views.itinerary_detail_view,
        name="itinerary-detail",
    ),
]
