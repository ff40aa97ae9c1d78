import os

from models import AdminAccount


EVENT_CATEGORIES = (
    "Academic",
    "Cultural",
    "Sports",
    "Technical",
    "Workshop",
    "Seminar",
    "Competition",
    "Social",
    "Other",
)

# Seeded administrator logins; these never live in the users collection
ADMIN_ACCOUNTS = (
    AdminAccount(username="hod", password="000", name="Head of Department", department="Administration"),
    AdminAccount(username="staff", password="000", name="Staff Admin", department="Administration"),
)

MIN_PASSWORD_LENGTH = 6


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///events.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" keeps collections in the database, "memory" keeps them in-process
    PORTAL_STORE = os.getenv("PORTAL_STORE", "sql")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    PORTAL_STORE = "sql"
    LOG_FILE = None
