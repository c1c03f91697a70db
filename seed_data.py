"""
Demo News Art Seed Data
=======================
Sample entries shaped like the ones the generation workflow writes.
Used to populate a local SQLite store; the newest entry is marked active.
"""

import db as database

DEMO_ENTRIES = [
    {
        "headline": "Global leaders gather for emergency climate summit as heatwaves break records",
        "description": "Cracked earth under a blazing red sun, world flags melting into rising oceans, dramatic oil painting",
        "image_url": "https://res.cloudinary.com/demo/image/upload/news-art/climate-summit.png",
        "created_at": "2025-06-01T09:00:00+00:00",
    },
    {
        "headline": "Central banks signal coordinated rate cuts amid slowing growth",
        "description": "Towering marble columns dissolving into falling golden coins under a stormy grey sky, surreal style",
        "image_url": "https://res.cloudinary.com/demo/image/upload/news-art/rate-cuts.png",
        "created_at": "2025-06-02T09:00:00+00:00",
    },
    {
        "headline": "Ceasefire talks resume as humanitarian convoys reach besieged city",
        "description": "White doves carrying olive branches over a ruined skyline at dawn, soft watercolor light",
        "image_url": "https://res.cloudinary.com/demo/image/upload/news-art/ceasefire.png",
        "created_at": "2025-06-03T09:00:00+00:00",
    },
]


def seed_news(entries=None):
    """Insert entries in order; the last one becomes the active entry. Returns the count."""
    entries = DEMO_ENTRIES if entries is None else entries
    database.db_init()
    for i, e in enumerate(entries):
        database.insert_entry(
            e["headline"],
            e["description"],
            e["image_url"],
            is_active=(i == len(entries) - 1),
            created_at=e.get("created_at"),
        )
    print(f"[DB] Seeded {len(entries)} news art entries")
    return len(entries)
