"""
Seed script: citizen users around a point, for trying nearby alerts locally.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if Firebase is configured: python scripts/seed_db.py --apply --force-mock

Each user gets role "citizen", a location with a geohash (so the spatial
index can find them) and a placeholder push token. With the mock DB, set
MOCK_DB_PATH so the seeded data survives the run.
"""

import argparse
import math
import random

from fillahole.config.firebase import build_firestore_client
from fillahole.core.settings import Settings
from fillahole.utils.geo import encode_geohash, haversine_m


def random_point_within(lat: float, lng: float, radius_m: float, rng: random.Random):
    """Uniform random point in a disc, small-distance approximation."""
    distance = radius_m * math.sqrt(rng.random())
    bearing = rng.random() * 2 * math.pi
    dlat = (distance * math.cos(bearing)) / 111320
    dlng = (distance * math.sin(bearing)) / (111320 * math.cos(math.radians(lat)))
    return lat + dlat, lng + dlng


def build_users(center_lat: float, center_lng: float, count: int, radius_km: float, seed: int):
    rng = random.Random(seed)
    users = {}
    for i in range(count):
        lat, lng = random_point_within(center_lat, center_lng, radius_km * 1000, rng)
        user_id = f"seed_user_{i:04d}"
        users[user_id] = {
            "display_name": f"Citizen {i}",
            "role": "citizen",
            "push_token": f"seed-token-{i:04d}",
            "location": {
                "latitude": lat,
                "longitude": lng,
                "geohash": encode_geohash(lat, lng),
            },
        }
    return users


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Use the mock DB even if Firebase is configured")
    parser.add_argument("--center", default="16.5062,80.6480", help="lat,lng to scatter users around")
    parser.add_argument("--count", type=int, default=50)
    parser.add_argument("--radius-km", type=float, default=5.0)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    center_lat, center_lng = (float(p) for p in args.center.split(","))
    users = build_users(center_lat, center_lng, args.count, args.radius_km, args.seed)

    settings = Settings()
    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    db = build_firestore_client(settings) if args.apply else None
    for user_id, data in users.items():
        loc = data["location"]
        distance = haversine_m(center_lat, center_lng, loc["latitude"], loc["longitude"])
        print(f"Preparing: users/{user_id} ({distance:.0f} m, {loc['geohash']})")
        if db is None:
            continue
        try:
            db.collection("users").document(user_id).set(data)
        except Exception as e:
            print(f"Failed to write users/{user_id}: {e}")

    if args.apply:
        print(f"Seeding completed: {len(users)} users.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
