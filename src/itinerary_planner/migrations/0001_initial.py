import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Place",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("slug", models.SlugField(max_length=200, unique=True)),
                ("title", models.CharField(max_length=255)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("latitude", models.FloatField()),
                ("longitude", models.FloatField()),
                (
                    "status",
                    models.CharField(
                        choices=[("published", "Published"), ("archived", "Archived")],
                        default="published",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("city", "title"),
                "indexes": [
                    models.Index(fields=["status"], name="place_status_idx"),
                    models.Index(fields=["latitude", "longitude"], name="place_location_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Itinerary",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("owner_id", models.CharField(max_length=64)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("date", models.DateField()),
                ("window_start", models.TimeField()),
                ("window_end", models.TimeField()),
                ("start_latitude", models.FloatField()),
                ("start_longitude", models.FloatField()),
                (
                    "travel_mode",
                    models.CharField(
                        choices=[("walking", "Walking"), ("driving", "Driving"), ("taxi", "Taxi")],
                        max_length=10,
                    ),
                ),
                ("dwell_minutes", models.PositiveIntegerField()),
                ("total_distance_km", models.FloatField()),
                ("total_travel_minutes", models.PositiveIntegerField()),
                ("completion_time", models.TimeField()),
                ("buffer_minutes", models.PositiveIntegerField()),
                ("feasible", models.BooleanField(default=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["owner_id", "date"], name="itinerary_owner_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Visit",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("sequence", models.PositiveSmallIntegerField()),
                ("arrival_time", models.TimeField()),
                ("departure_time", models.TimeField()),
                ("dwell_minutes", models.PositiveIntegerField()),
                ("travel_minutes_from_previous", models.PositiveIntegerField()),
                ("distance_from_previous_km", models.FloatField()),
                (
                    "itinerary",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="visits",
                        to="itinerary_planner.itinerary",
                    ),
                ),
                (
                    "place",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="visits",
                        to="itinerary_planner.place",
                    ),
                ),
            ],
            options={
                "ordering": ("itinerary", "sequence"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("itinerary", "sequence"), name="unique_visit_sequence"
                    ),
                ],
            },
        ),
    ]
