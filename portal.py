"""
Domain model of the events portal: credentials, event approval and
registration admission control.

Every operation reads whole collections from the injected store, changes them
in memory and writes them back. Failures are raised as ``PortalError``
subclasses carrying the message shown to the user and an HTTP status.
"""
import logging
import uuid
from datetime import date

from config import ADMIN_ACCOUNTS, EVENT_CATEGORIES
from models import (
    EVENT_STATUSES,
    Admin,
    Event,
    Registration,
    Staff,
    Student,
    user_from_dict,
    utcnow_iso,
)
from store import EVENTS, REGISTRATIONS, USERS

logger = logging.getLogger(__name__)

REQUIRED_EVENT_FIELDS = ("title", "description", "date", "time", "location", "category")
REGISTERABLE_ROLES = ("student", "staff")
AUTO_APPROVED_ROLES = ("admin", "staff")


# =====================
# ERRORS
# =====================
class PortalError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(PortalError):
    status_code = 401
    message = "Invalid credentials"


class DuplicateEmail(PortalError):
    status_code = 409
    message = "User with this email already exists"


class AlreadyRegistered(PortalError):
    status_code = 409
    message = "You are already registered for this event!"


class EventFull(PortalError):
    status_code = 409
    message = "This event is full!"


class EventNotFound(PortalError):
    status_code = 404
    message = "Event not found"


class InvalidInput(PortalError):
    status_code = 400
    message = "Invalid input"


def new_id(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _blank(value):
    return value is None or not str(value).strip()


class EventPortal:
    def __init__(self, store, admin_accounts=ADMIN_ACCOUNTS, categories=EVENT_CATEGORIES):
        self.store = store
        self.admin_accounts = tuple(admin_accounts)
        self.categories = tuple(categories)

    # =====================
    # SESSION
    # =====================
    def authenticate(self, identifier, password):
        """Resolve a login against the admin table first, then stored users.

        Returns the matching user, or None. A successful match is persisted as
        the session record; synthesized admins are never added to ``users``.
        """
        user = self._match_admin(identifier, password) or self._match_stored(identifier, password)
        if user is None:
            logger.warning("Failed login for %r", identifier)
            return None
        self.store.put_session(user.to_dict())
        logger.info("User %s logged in as %s", user.id, user.role)
        return user

    @staticmethod
    def _admin_user(account):
        return Admin(
            id=f"admin-{account.username}",
            name=account.name,
            email=f"{account.username}@college.edu",
            password="",
            department=account.department,
            created_at=utcnow_iso(),
        )

    def _match_admin(self, identifier, password):
        for account in self.admin_accounts:
            if account.username == identifier and account.password == password:
                return self._admin_user(account)
        return None

    def _match_stored(self, identifier, password):
        # name and email share one identifier namespace, first match in insertion order wins
        for record in self.store.get(USERS):
            if identifier in (record.get("email"), record.get("name")) and record.get("password") == password:
                return user_from_dict(record)
        return None

    def login(self, identifier, password):
        user = self.authenticate(identifier, password)
        if user is None:
            raise InvalidCredentials()
        return user

    def logout(self):
        self.store.clear_session()

    def current_user(self):
        record = self.store.get_session()
        if record is None:
            return None
        return user_from_dict(record)

    def load_user(self, user_id):
        """Look a user up by id: stored users first, then the admin table."""
        for record in self.store.get(USERS):
            if record.get("id") == user_id:
                return user_from_dict(record)
        for account in self.admin_accounts:
            if user_id == f"admin-{account.username}":
                return self._admin_user(account)
        return None

    # =====================
    # USERS
    # =====================
    def register_user(self, candidate):
        """Create a student or staff account.

        Password length and confirmation are checked by the caller. Email
        uniqueness is an exact, case-sensitive comparison.
        """
        role = candidate.get("role")
        if role not in REGISTERABLE_ROLES:
            raise InvalidInput("Role must be student or staff")
        missing = [name for name in ("name", "email", "password", "department") if _blank(candidate.get(name))]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

        users = self.store.get(USERS)
        email = candidate["email"]
        if any(record.get("email") == email for record in users):
            logger.warning("Registration rejected, %s already on file", email)
            raise DuplicateEmail()

        common = dict(
            id=new_id(role),
            name=candidate["name"],
            email=email,
            password=candidate["password"],
            department=candidate["department"],
            created_at=utcnow_iso(),
        )
        if role == "student":
            user = Student(
                **common,
                roll_no=candidate.get("roll_no") or None,
                study_year=candidate.get("study_year") or None,
            )
        else:
            user = Staff(**common, id_no=candidate.get("id_no") or None)

        users.append(user.to_dict())
        self.store.put(USERS, users)
        logger.info("Registered %s %s", role, user.id)
        return user

    def list_users(self):
        return [user_from_dict(record) for record in self.store.get(USERS)]

    # =====================
    # EVENTS
    # =====================
    def create_event(self, data, creator):
        missing = [name for name in REQUIRED_EVENT_FIELDS if _blank(data.get(name))]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
        if data["category"] not in self.categories:
            raise InvalidInput(f"Unknown category: {data['category']}")
        try:
            date.fromisoformat(data["date"])
        except ValueError:
            raise InvalidInput("Date must be in YYYY-MM-DD format")

        event = Event(
            id=new_id("event"),
            title=data["title"],
            description=data["description"],
            date=data["date"],
            time=data["time"],
            location=data["location"],
            category=data["category"],
            image_url=data.get("image_url") or None,
            max_participants=self._parse_cap(data.get("max_participants")),
            created_by=creator.id,
            created_by_name=creator.name,
            created_by_role=creator.role,
            status="approved" if creator.role in AUTO_APPROVED_ROLES else "pending",
            created_at=utcnow_iso(),
        )

        events = self.store.get(EVENTS)
        events.append(event.to_dict())
        self.store.put(EVENTS, events)
        logger.info("Event %s created by %s (%s)", event.id, creator.id, event.status)
        return event

    @staticmethod
    def _parse_cap(value):
        if _blank(value):
            return None
        try:
            cap = int(value)
        except (TypeError, ValueError):
            raise InvalidInput("Participant limit must be a whole number")
        if cap < 1:
            raise InvalidInput("Participant limit must be at least 1")
        return cap

    def set_event_status(self, event_id, status):
        """Overwrite the status of one event; nothing else in the record changes.

        Approved or rejected events may be switched again.
        """
        if status not in ("approved", "rejected"):
            raise InvalidInput("Status must be approved or rejected")
        events = self.store.get(EVENTS)
        for record in events:
            if record.get("id") == event_id:
                record["status"] = status
                break
        else:
            raise EventNotFound()
        self.store.put(EVENTS, events)
        logger.info("Event %s marked %s", event_id, status)
        return Event.from_dict(record)

    def get_event(self, event_id):
        for record in self.store.get(EVENTS):
            if record.get("id") == event_id:
                return Event.from_dict(record)
        raise EventNotFound()

    def list_events(self, status=None):
        if status is not None and status not in EVENT_STATUSES:
            raise InvalidInput(f"Unknown status: {status}")
        events = [Event.from_dict(record) for record in self.store.get(EVENTS)]
        if status is None:
            return events
        return [event for event in events if event.status == status]

    def browse_events(self, search="", category=""):
        needle = (search or "").lower()
        matches = []
        for event in self.list_events("approved"):
            if needle and needle not in event.title.lower() and needle not in event.description.lower():
                continue
            if category and category != "All" and event.category != category:
                continue
            matches.append(event)
        return matches

    @staticmethod
    def split_by_date(events, today=None):
        today = today or date.today()
        upcoming, past = [], []
        for event in events:
            if date.fromisoformat(event.date) >= today:
                upcoming.append(event)
            else:
                past.append(event)
        return upcoming, past

    def events_created_by(self, user_id):
        grouped = {status: [] for status in EVENT_STATUSES}
        for event in self.list_events():
            if event.created_by == user_id:
                grouped[event.status].append(event)
        return grouped

    # =====================
    # REGISTRATIONS
    # =====================
    def register_for_event(self, event_id, user):
        """Admission control: duplicate check, then capacity check, then append.

        Whether the event is approved, and whether the user may register at
        all, is checked by the caller.
        """
        registrations = self.store.get(REGISTRATIONS)
        if any(r.get("eventId") == event_id and r.get("userId") == user.id for r in registrations):
            logger.warning("User %s already registered for %s", user.id, event_id)
            raise AlreadyRegistered()

        event = self.get_event(event_id)
        if event.max_participants is not None:
            taken = sum(1 for r in registrations if r.get("eventId") == event_id)
            if taken >= event.max_participants:
                logger.warning("Event %s is full (%d/%d)", event_id, taken, event.max_participants)
                raise EventFull()

        registration = Registration(
            id=new_id("reg"),
            event_id=event_id,
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            user_role=user.role,
            department=user.department,
            roll_no=getattr(user, "roll_no", None),
            id_no=getattr(user, "id_no", None),
            registered_at=utcnow_iso(),
        )
        registrations.append(registration.to_dict())
        self.store.put(REGISTRATIONS, registrations)
        logger.info("User %s registered for %s", user.id, event_id)
        return registration

    def count_registrations(self, event_id):
        return sum(1 for r in self.store.get(REGISTRATIONS) if r.get("eventId") == event_id)

    def my_registrations(self, user_id):
        return [
            Registration.from_dict(r)
            for r in self.store.get(REGISTRATIONS)
            if r.get("userId") == user_id
        ]

    def list_registrations(self):
        return [Registration.from_dict(r) for r in self.store.get(REGISTRATIONS)]

    def registered_events(self, user_id):
        events = {event.id: event for event in self.list_events()}
        return [
            events[registration.event_id]
            for registration in self.my_registrations(user_id)
            if registration.event_id in events
        ]

    def stats(self):
        events = self.list_events()
        counts = {status: 0 for status in EVENT_STATUSES}
        for event in events:
            counts[event.status] += 1
        return {
            "total_events": len(events),
            "pending_events": counts["pending"],
            "approved_events": counts["approved"],
            "rejected_events": counts["rejected"],
            "registrations": len(self.store.get(REGISTRATIONS)),
            "users": len(self.store.get(USERS)),
        }
