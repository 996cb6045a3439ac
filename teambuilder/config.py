"""
Runtime configuration read from the environment.
"""
import os


DATABASE_URL = (
    os.getenv("DATABASE_URL")
    or os.getenv("POSTGRES_URL")
    or os.getenv("POSTGRES_URL_NON_POOLING")
    or "sqlite:///./team_building.db"
)

# SQLAlchemy 1.4+ requires postgresql://, but some hosts provide postgres://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Participant CSV used to seed a demo event when the database is empty
SEED_CSV_PATH = os.getenv("SEED_CSV_PATH")

# ─── Team building rules ───
TEAM_SIZE = 4
MAX_VOTES = 3
PARTICIPANTS_PER_LEADER = 4
