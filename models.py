from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import ClassVar, Optional

from flask_login import UserMixin
from extensions import db


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


def camel_case(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class StoredCollection(db.Model):
    """One JSON blob per store key (users, events, registrations, currentUser)."""
    __tablename__ = "stored_collection"

    key = db.Column(db.String(50), primary_key=True)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class Record:
    """Maps snake_case dataclass fields onto the camelCase keys of stored blobs.

    Unset optional fields (None) are left out of the stored record.
    """

    def to_dict(self):
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                data[camel_case(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data):
        kwargs = {}
        for f in fields(cls):
            key = camel_case(f.name)
            if key in data:
                kwargs[f.name] = data[key]
        return cls(**kwargs)


# =====================
# USERS
# =====================
@dataclass
class User(Record, UserMixin):
    id: str
    name: str
    email: str
    password: str
    department: str
    created_at: str

    role: ClassVar[str] = ""

    def to_dict(self):
        data = super().to_dict()
        data["role"] = self.role
        return data

    def public_dict(self):
        data = self.to_dict()
        data.pop("password", None)
        return data


@dataclass
class Student(User):
    roll_no: Optional[str] = None
    study_year: Optional[str] = None

    role: ClassVar[str] = "student"


@dataclass
class Staff(User):
    id_no: Optional[str] = None

    role: ClassVar[str] = "staff"


@dataclass
class Admin(User):
    role: ClassVar[str] = "admin"


USER_ROLES = {
    "student": Student,
    "staff": Staff,
    "admin": Admin,
}


def user_from_dict(data):
    role = data.get("role")
    if role not in USER_ROLES:
        raise ValueError(f"Unknown user role: {role!r}")
    return USER_ROLES[role].from_dict(data)


@dataclass(frozen=True)
class AdminAccount:
    username: str
    password: str
    name: str
    department: str


# =====================
# EVENTS
# =====================
EVENT_STATUSES = ("pending", "approved", "rejected")


@dataclass
class Event(Record):
    id: str
    title: str
    description: str
    date: str
    time: str
    location: str
    category: str
    created_by: str
    created_by_name: str
    created_by_role: str
    status: str
    created_at: str
    image_url: Optional[str] = None
    max_participants: Optional[int] = None

    @property
    def is_open(self):
        return self.status == "approved"


# =====================
# REGISTRATIONS
# =====================
@dataclass
class Registration(Record):
    id: str
    event_id: str
    user_id: str
    user_name: str
    user_email: str
    user_role: str
    department: str
    registered_at: str
    roll_no: Optional[str] = None
    id_no: Optional[str] = None
