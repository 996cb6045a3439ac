"""
Seed script to create a demo event from a participant CSV roster.
"""
import logging
import sys

from sqlalchemy.orm import Session
from teambuilder.database import SessionLocal, init_db
from teambuilder.importer import read_participant_csv
from teambuilder.models import Event, Participant

logger = logging.getLogger(__name__)

DEMO_EVENT_NAME = "Demo Team Building"


def seed_demo_event(db: Session, csv_path: str):
    """Create the demo event and its participants unless events already exist."""
    if db.query(Event).count() > 0:
        logger.info("Database already has events. Skipping seed.")
        return None

    rows = read_participant_csv(csv_path)
    try:
        event = Event(name=DEMO_EVENT_NAME, description=f"Seeded from {csv_path}")
        db.add(event)
        db.flush()

        seeded = 0
        for row in rows:
            if not row["name"]:
                continue
            db.add(Participant(event_id=event.id, **row))
            seeded += 1

        db.commit()
        logger.info("Seeded event %s with %d participants", event.id, seeded)
        return event
    except Exception:
        db.rollback()
        logger.exception("Seed failed")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 2:
        sys.exit("usage: python -m teambuilder.seed <participants.csv>")
    init_db()
    session = SessionLocal()
    try:
        seed_demo_event(session, sys.argv[1])
    finally:
        session.close()
