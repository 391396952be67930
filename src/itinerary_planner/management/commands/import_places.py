from __future__ import annotations

from pathlib import Path
from typing import Any

import polars as pl
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from itinerary_planner.exceptions import RequestValidationError
from itinerary_planner.models import Place
from itinerary_planner.services.types import GeoPoint


class Command(BaseCommand):
    help = "Import the places catalog from a CSV with WKT locations using Polars."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--csv-path",
            type=str,
            default=str(settings.PROJECT_ROOT / "places.csv"),
            help="Path to the source places CSV",
        )
        parser.add_argument(
            "--replace",
            action="store_true",
            help="Delete places that are not referenced by any itinerary before importing",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        csv_path = Path(options["csv_path"])
        if not csv_path.exists():
            raise CommandError(f"CSV file does not exist: {csv_path}")

        frame = self._load_and_transform(csv_path)

        records: list[dict[str, Any]] = []
        skipped = 0
        for row in frame.to_dicts():
            try:
                point = GeoPoint.from_wkt(row["location"])
            except RequestValidationError as exc:
                self.stderr.write(f"Skipping {row['slug']}: {exc}")
                skipped += 1
                continue
            records.append({**row, "latitude": point.latitude, "longitude": point.longitude})

        if options["replace"]:
            Place.objects.filter(visits__isnull=True).delete()

        existing = {
            place.slug: place
            for place in Place.objects.filter(slug__in=[row["slug"] for row in records])
        }

        to_create: list[Place] = []
        to_update: list[Place] = []

        for row in records:
            place = existing.get(row["slug"])
            if place is None:
                to_create.append(
                    Place(
                        slug=row["slug"],
                        title=row["title"],
                        address=row["address"],
                        city=row["city"],
                        latitude=row["latitude"],
                        longitude=row["longitude"],
                        status=row["status"],
                    )
                )
                continue

            place.title = row["title"]
            place.address = row["address"]
            place.city = row["city"]
            place.latitude = row["latitude"]
            place.longitude = row["longitude"]
            place.status = row["status"]
            to_update.append(place)

        if to_create:
            Place.objects.bulk_create(to_create, batch_size=1000)
        if to_update:
            Place.objects.bulk_update(
                to_update,
                ["title", "address", "city", "latitude", "longitude", "status"],
                batch_size=1000,
            )

        self.stdout.write(
            self.style.SUCCESS(
                "Imported places: "
                + (
                    f"{len(records)} rows normalized, {skipped} skipped, "
                    f"{len(to_create)} created, {len(to_update)} updated"
                )
            )
        )

    @staticmethod
    def _load_and_transform(csv_path: Path) -> pl.DataFrame:
        frame = pl.read_csv(csv_path, infer_schema_length=5000)
        required_columns = {"slug", "title", "address", "city", "location"}
        missing_columns = required_columns.difference(frame.columns)
        if missing_columns:
            raise CommandError(f"Missing expected columns: {sorted(missing_columns)}")

        if "status" not in frame.columns:
            frame = frame.with_columns(pl.lit(Place.Status.PUBLISHED.value).alias("status"))

        statuses = [choice.value for choice in Place.Status]
        return (
            frame.select(
                pl.col("slug")
                .cast(pl.Utf8, strict=False)
                .str.strip_chars()
                .str.to_lowercase()
                .alias("slug"),
                pl.col("title").cast(pl.Utf8, strict=False).str.strip_chars().alias("title"),
                pl.col("address")
                .cast(pl.Utf8, strict=False)
                .str.strip_chars()
                .fill_null("")
                .alias("address"),
                pl.col("city")
                .cast(pl.Utf8, strict=False)
                .str.strip_chars()
                .fill_null("")
                .alias("city"),
                pl.col("location").cast(pl.Utf8, strict=False).str.strip_chars().alias("location"),
                pl.col("status")
                .cast(pl.Utf8, strict=False)
                .str.strip_chars()
                .str.to_lowercase()
                .fill_null(Place.Status.PUBLISHED.value)
                .alias("status"),
            )
            .filter(
                pl.col("slug").is_not_null()
                & (pl.col("slug").str.len_chars() > 0)
                & pl.col("title").is_not_null()
                & (pl.col("title").str.len_chars() > 0)
                & pl.col("location").is_not_null()
                & pl.col("status").is_in(statuses)
            )
            .unique(subset=["slug"], keep="last", maintain_order=True)
        )
