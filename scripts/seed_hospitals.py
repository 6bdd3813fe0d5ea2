"""
Seed script to populate the hospitals table.

Reads a CSV with columns name, address, phone, fax, local_health_district
when a path is given, otherwise loads a small starter list.
"""
import argparse
import asyncio
import csv
from pathlib import Path

from sqlalchemy import select

from discharger.db.base import Base
from discharger.db.models.hospital import Hospital
from discharger.db.session import AsyncSessionLocal, engine


STARTER_HOSPITALS = [
    {"name": "Royal Prince Alfred Hospital", "local_health_district": "Sydney Local Health District"},
    {"name": "Concord Repatriation General Hospital", "local_health_district": "Sydney Local Health District"},
    {"name": "Westmead Hospital", "local_health_district": "Western Sydney Local Health District"},
    {"name": "Blacktown Hospital", "local_health_district": "Western Sydney Local Health District"},
    {"name": "Royal North Shore Hospital", "local_health_district": "Northern Sydney Local Health District"},
    {"name": "St George Hospital", "local_health_district": "South Eastern Sydney Local Health District"},
    {"name": "Prince of Wales Hospital", "local_health_district": "South Eastern Sydney Local Health District"},
    {"name": "Liverpool Hospital", "local_health_district": "South Western Sydney Local Health District"},
    {"name": "John Hunter Hospital", "local_health_district": "Hunter New England Local Health District"},
    {"name": "Wollongong Hospital", "local_health_district": "Illawarra Shoalhaven Local Health District"},
]


def load_csv(path: Path) -> list[dict]:
    hospitals = []
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for row in reader:
            if not row or not row[0].strip():
                continue
            hospitals.append({
                "name": row[0].strip(),
                "local_health_district": row[4].strip() if len(row) > 4 and row[4].strip() else None,
            })
    return hospitals


async def seed_hospitals(hospitals: list[dict]):
    """Insert hospitals whose names are not already present."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        existing = set((await session.scalars(select(Hospital.name))).all())
        new = [h for h in hospitals if h["name"] not in existing]

        for hospital_data in new:
            session.add(Hospital(**hospital_data))
        await session.commit()

        print(f"✅ Seeded {len(new)} hospitals ({len(hospitals) - len(new)} already present).")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the hospitals table")
    parser.add_argument("csv_path", nargs="?", type=Path, help="CSV of hospitals to load")
    args = parser.parse_args()

    print("🌱 Starting hospital seeding...")
    rows = load_csv(args.csv_path) if args.csv_path else STARTER_HOSPITALS
    asyncio.run(seed_hospitals(rows))
