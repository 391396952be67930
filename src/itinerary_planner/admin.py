from django.contrib import admin

from itinerary_planner.models import Itinerary, Place, Visit


@admin.register(Place)
class PlaceAdmin(admin.ModelAdmin):
    list_display = ("title", "city", "status", "latitude", "longitude")
    list_filter = ("status", "city")
    search_fields = ("title", "slug", "address", "city")
    prepopulated_fields = {"slug": ("title",)}
    ordering = ("city", "title")


class VisitInline(admin.TabularInline):
    model = Visit
    extra = 0
    can_delete = False
    readonly_fields = (
        "sequence",
        "place",
        "arrival_time",
        "departure_time",
        "dwell_minutes",
        "travel_minutes_from_previous",
        "distance_from_previous_km",
    )


@admin.register(Itinerary)
class ItineraryAdmin(admin.ModelAdmin):
    list_display = ("id", "owner_id", "city", "date", "travel_mode", "status", "buffer_minutes")
    list_filter = ("status", "travel_mode", "date")
    search_fields = ("owner_id", "city")
    inlines = (VisitInline,)
