from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

from itinerary_planner.exceptions import InvalidCoordinateError
from itinerary_planner.services.types import GeoPoint


class Place(models.Model):
    class Status(models.TextChoices):
        PUBLISHED = "published", "Published"
        ARCHIVED = "archived", "Archived"

    objects = models.Manager["Place"]()

    slug = models.SlugField(max_length=200, unique=True)
    title = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    latitude = models.FloatField()
    longitude = models.FloatField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PUBLISHED)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("city", "title")
        indexes = (
            models.Index(fields=["status"], name="place_status_idx"),
            models.Index(fields=["latitude", "longitude"], name="place_location_idx"),
        )

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)

    def clean(self) -> None:
        try:
            self.location
        except InvalidCoordinateError as exc:
            raise ValidationError({"latitude": str(exc)}) from exc

    def __str__(self) -> str:
        return f"{self.title} ({self.city})" if self.city else self.title


class Itinerary(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class TravelMode(models.TextChoices):
        WALKING = "walking", "Walking"
        DRIVING = "driving", "Driving"
        TAXI = "taxi", "Taxi"

    objects = models.Manager["Itinerary"]()

    owner_id = models.CharField(max_length=64)
    city = models.CharField(max_length=100, blank=True, default="")
    date = models.DateField()
    window_start = models.TimeField()
    window_end = models.TimeField()
    start_latitude = models.FloatField()
    start_longitude = models.FloatField()
    travel_mode = models.CharField(max_length=10, choices=TravelMode.choices)
    dwell_minutes = models.PositiveIntegerField()

    # Plan summary
    total_distance_km = models.FloatField()
    total_travel_minutes = models.PositiveIntegerField()
    completion_time = models.TimeField()
    buffer_minutes = models.PositiveIntegerField()
    feasible = models.BooleanField(default=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = (models.Index(fields=["owner_id", "date"], name="itinerary_owner_date_idx"),)

    @property
    def start_location(self) -> GeoPoint:
        return GeoPoint(latitude=self.start_latitude, longitude=self.start_longitude)

    def __str__(self) -> str:
        return f"Itinerary {self.pk} for {self.owner_id} on {self.date}"


class Visit(models.Model):
    objects = models.Manager["Visit"]()

    itinerary = models.ForeignKey(Itinerary, on_delete=models.CASCADE, related_name="visits")
    place = models.ForeignKey(Place, on_delete=models.PROTECT, related_name="visits")
    sequence = models.PositiveSmallIntegerField()
    arrival_time = models.TimeField()
    departure_time = models.TimeField()
    dwell_minutes = models.PositiveIntegerField()
    travel_minutes_from_previous = models.PositiveIntegerField()
    distance_from_previous_km = models.FloatField()

    class Meta:
        ordering = ("itinerary", "sequence")
        constraints = (
            models.UniqueConstraint(
                fields=["itinerary", "sequence"], name="unique_visit_sequence"
            ),
        )

    def __str__(self) -> str:
        return f"#{self.sequence} {self.place_id} ({self.arrival_time}-{self.departure_time})"
