"""
Reset the events collection to a fixed set of sample conferences.

Usage: python seed.py
Refuses to run when APP_ENV=production.
"""
import logging
import sys
from typing import Any, Dict, List

import config
from database import get_db
from store import EventStore

logger = logging.getLogger(__name__)

SEED_EVENTS: List[Dict[str, Any]] = [
    {
        "title": "React Conf 2026",
        "slug": "react-conf-2026",
        "description": "The official React conference hosted by the React team.",
        "overview": "Two days of talks, workshops and networking with the React core team "
                    "about upcoming features, best practices and the roadmap.",
        "image": "https://images.unsplash.com/photo-1540575467063-178a50c2df87?w=800&h=600&fit=crop",
        "venue": "Mandalay Bay Convention Center",
        "location": "Las Vegas, NV, USA",
        "date": "2026-05-15",
        "time": "09:00",
        "mode": "In-Person",
        "audience": "React developers, Frontend engineers, Full-stack developers",
        "agenda": [
            "09:00 AM - Keynote: The Future of React",
            "10:30 AM - React Server Components Deep Dive",
            "12:00 PM - Lunch & Networking",
            "01:30 PM - Building Accessible React Applications",
            "03:00 PM - React Native: What's New",
        ],
        "organizer": "Meta React Team",
        "tags": ["React", "JavaScript", "Frontend", "Web Development", "Meta"],
    },
    {
        "title": "CityJS London 2026",
        "slug": "cityjs-london-2026",
        "description": "The UK's JavaScript conference returns to London.",
        "overview": "Talks from industry leaders, hands-on workshops and plenty of chances "
                    "to meet other developers, from vanilla JS to the latest frameworks.",
        "image": "https://images.unsplash.com/photo-1505373877841-8d25f7d46678?w=800&h=600&fit=crop",
        "venue": "The Brewery",
        "location": "London, UK",
        "date": "2026-06-12",
        "time": "08:30",
        "mode": "Hybrid",
        "audience": "JavaScript developers, Web developers, Tech leads",
        "agenda": [
            "08:30 AM - Registration & Breakfast",
            "09:30 AM - Opening Keynote: JavaScript in 2026",
            "11:00 AM - TypeScript Features",
            "02:00 PM - Web Performance Masterclass",
        ],
        "organizer": "CityJS",
        "tags": ["JavaScript", "TypeScript", "Web Development"],
    },
    {
        "title": "PyCon US 2026",
        "slug": "pycon-us-2026",
        "description": "The largest annual gathering for the Python community.",
        "overview": "Tutorials, talks, sprints and an expo hall covering everything from "
                    "web frameworks to data science and packaging.",
        "image": "https://images.unsplash.com/photo-1515187029135-18ee286d815b?w=800&h=600&fit=crop",
        "venue": "David L. Lawrence Convention Center",
        "location": "Pittsburgh, PA, USA",
        "date": "2026-05-13",
        "time": "09:00",
        "mode": "In-Person",
        "audience": "Python developers, Data scientists, Educators",
        "agenda": [
            "09:00 AM - Opening Keynote",
            "10:30 AM - Talks Track",
            "02:00 PM - Open Spaces",
        ],
        "organizer": "Python Software Foundation",
        "tags": ["Python", "Data Science", "Open Source"],
    },
    {
        "title": "JSNation Online",
        "slug": "jsnation-online",
        "description": "A remote JavaScript conference streamed worldwide.",
        "overview": "A full day of JavaScript talks streamed live, with Q&A rooms and "
                    "async workshops for every timezone.",
        "image": "https://images.unsplash.com/photo-1587825140708-dfaf72ae4b04?w=800&h=600&fit=crop",
        "venue": "Online",
        "location": "Worldwide",
        "date": "2026-09-24",
        "time": "15:00",
        "mode": "Virtual",
        "audience": "JavaScript developers",
        "agenda": [
            "03:00 PM - Welcome",
            "03:15 PM - Runtime Talks",
            "06:00 PM - Panel",
        ],
        "organizer": "GitNation",
        "tags": ["JavaScript", "Node.js", "Frontend"],
    },
]


def seed(store: EventStore) -> List[str]:
    removed = store.delete_all()
    logger.info("Removed %d existing events", removed)
    slugs = []
    for record in SEED_EVENTS:
        created = store.create(record)
        logger.info("Seeded %s", created["slug"])
        slugs.append(created["slug"])
    return slugs


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(message)s")
    if config.APP_ENV == "production":
        logger.warning("Seed script skipped in production environment")
        return 0
    slugs = seed(EventStore(get_db()))
    logger.info("Seeded %d events", len(slugs))
    return 0


if __name__ == "__main__":
    sys.exit(main())
