"""
Events portal - test configuration and fixtures
"""
import pytest

from app import create_app
from config import TestConfig
from portal import EventPortal
from store import MemoryStore


@pytest.fixture
def app():
    """Application on a fresh in-memory SQLite database"""
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def portal(store):
    return EventPortal(store)


@pytest.fixture
def event_data():
    """Factory for valid event form data"""
    def make(**overrides):
        data = {
            "title": "Hack Night",
            "description": "Overnight hackathon for all departments",
            "date": "2030-03-14",
            "time": "18:00",
            "location": "Lab Block 2",
            "category": "Technical",
        }
        data.update(overrides)
        return data
    return make


@pytest.fixture
def make_user(portal):
    """Factory registering a student (default) or staff account"""
    counter = {"n": 0}

    def make(role="student", **overrides):
        counter["n"] += 1
        candidate = {
            "name": f"User {counter['n']}",
            "email": f"user{counter['n']}@x.edu",
            "password": "secret1",
            "role": role,
            "department": "Computer Science",
        }
        if role == "student":
            candidate.update(roll_no=f"CS{counter['n']:03d}", study_year="2")
        else:
            candidate.update(id_no=f"ST{counter['n']:03d}")
        candidate.update(overrides)
        return portal.register_user(candidate)
    return make


@pytest.fixture
def admin(portal):
    return portal.authenticate("hod", "000")
