import logging
from functools import wraps
from logging.handlers import RotatingFileHandler

from flask import Blueprint, Flask, Response, abort, current_app, jsonify, request, send_file
from flask_login import current_user, login_required, login_user, logout_user

from config import EVENT_CATEGORIES, MIN_PASSWORD_LENGTH, Config
from extensions import db, login_manager
from portal import EventPortal, PortalError
from reports import REPORT_FILENAMES, build_rows, iter_csv, to_xlsx
from store import MemoryStore, SQLStore

logger = logging.getLogger(__name__)

bp = Blueprint("portal", __name__)


# =====================
# APP FACTORY
# =====================
def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = "portal.login"

    with app.app_context():
        db.create_all()

    store = MemoryStore() if app.config["PORTAL_STORE"] == "memory" else SQLStore()
    app.extensions["event_portal"] = EventPortal(store)
    app.register_blueprint(bp)

    logger.info("Events portal ready (%s store)", app.config["PORTAL_STORE"])
    return app


def configure_logging(app):
    logging.basicConfig(level=app.config["LOG_LEVEL"])
    if app.config.get("LOG_FILE"):
        handler = RotatingFileHandler(app.config["LOG_FILE"], maxBytes=10000, backupCount=3)
        handler.setLevel(app.config["LOG_LEVEL"])
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logging.getLogger().addHandler(handler)


def get_portal():
    return current_app.extensions["event_portal"]


# =====================
# LOGIN MANAGER
# =====================
@login_manager.user_loader
def load_user(user_id):
    return get_portal().load_user(user_id)


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if current_user.role != "admin":
            return "Access Denied", 403
        return view(*args, **kwargs)
    return wrapped


@bp.errorhandler(PortalError)
def handle_portal_error(error):
    return jsonify({"error": error.message}), error.status_code


def event_json(event, portal):
    data = event.to_dict()
    data["registrations"] = portal.count_registrations(event.id)
    return data


# =====================
# AUTH ROUTES
# =====================
@bp.route("/", methods=["GET", "POST"])
@bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        user = get_portal().login(request.form.get("identifier", ""), request.form.get("password", ""))
        login_user(user)
        return jsonify(user.public_dict())
    return jsonify({"message": "Log in with your email, name or admin username"})


@bp.route("/register", methods=["POST"])
def register():
    form = request.form
    password = form.get("password", "")
    if password != form.get("confirm_password", ""):
        return jsonify({"error": "Passwords do not match"}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"}), 400

    user = get_portal().register_user({
        "name": form.get("name"),
        "email": form.get("email"),
        "password": password,
        "role": form.get("role", "student"),
        "department": form.get("department"),
        "roll_no": form.get("roll_no"),
        "study_year": form.get("study_year"),
        "id_no": form.get("id_no"),
    })
    return jsonify(user.public_dict()), 201


@bp.route("/dashboard")
@login_required
def dashboard():
    portal = get_portal()
    if current_user.role == "admin":
        return jsonify({"user": current_user.public_dict(), "stats": portal.stats()})

    created = portal.events_created_by(current_user.id)
    return jsonify({
        "user": current_user.public_dict(),
        "my_events": {status: len(events) for status, events in created.items()},
        "my_registrations": len(portal.my_registrations(current_user.id)),
    })


@bp.route("/logout")
@login_required
def logout():
    get_portal().logout()
    logout_user()
    return jsonify({"message": "Logged out"})


# =====================
# EVENTS
# =====================
@bp.route("/events")
@login_required
def view_events():
    portal = get_portal()
    events = portal.browse_events(request.args.get("search", ""), request.args.get("category", ""))
    upcoming, past = portal.split_by_date(events)
    return jsonify({
        "categories": ["All", *EVENT_CATEGORIES],
        "upcoming": [event_json(event, portal) for event in upcoming],
        "past": [event_json(event, portal) for event in past],
    })


@bp.route("/create_event", methods=["POST"])
@login_required
def create_event():
    portal = get_portal()
    form = request.form
    event = portal.create_event({
        "title": form.get("title"),
        "description": form.get("description"),
        "date": form.get("date"),
        "time": form.get("time"),
        "location": form.get("location"),
        "category": form.get("category"),
        "image_url": form.get("image_url"),
        "max_participants": form.get("max_participants"),
    }, current_user)
    return jsonify(event_json(event, portal)), 201


@bp.route("/my_events")
@login_required
def my_events():
    portal = get_portal()
    created = portal.events_created_by(current_user.id)
    return jsonify({
        status: [event_json(event, portal) for event in events]
        for status, events in created.items()
    })


# =====================
# EVENT REGISTRATION
# =====================
@bp.route("/register_event/<event_id>", methods=["POST"])
@login_required
def register_event(event_id):
    if current_user.role == "admin":
        return jsonify({"error": "Only students and staff can register for events"}), 403

    portal = get_portal()
    event = portal.get_event(event_id)
    if not event.is_open:
        return jsonify({"error": "This event is not open for registration"}), 409

    registration = portal.register_for_event(event_id, current_user)
    return jsonify({
        "message": "Successfully registered for the event!",
        "registration": registration.to_dict(),
        "registrations": portal.count_registrations(event_id),
    }), 201


@bp.route("/my_registrations")
@login_required
def my_registrations():
    if current_user.role == "admin":
        return "Access Denied", 403

    portal = get_portal()
    return jsonify({
        "registrations": [r.to_dict() for r in portal.my_registrations(current_user.id)],
        "events": [event_json(event, portal) for event in portal.registered_events(current_user.id)],
    })


# =====================
# ADMIN REVIEW
# =====================
@bp.route("/admin/events")
@admin_required
def admin_events():
    portal = get_portal()
    events = portal.list_events(request.args.get("status") or None)
    return jsonify([event_json(event, portal) for event in events])


@bp.route("/event_status/<event_id>", methods=["POST"])
@admin_required
def event_status(event_id):
    portal = get_portal()
    event = portal.set_event_status(event_id, request.form.get("status", ""))
    return jsonify(event_json(event, portal))


# =====================
# REPORTS
# =====================
@bp.route("/reports/<kind>")
@admin_required
def report(kind):
    if kind not in REPORT_FILENAMES:
        abort(404)
    headers, rows = build_rows(kind, get_portal())
    return jsonify({"headers": headers, "rows": rows})


@bp.route("/reports/<kind>/download")
@admin_required
def download_report(kind):
    if kind not in REPORT_FILENAMES:
        abort(404)
    headers, rows = build_rows(kind, get_portal())
    filename = REPORT_FILENAMES[kind]

    if request.args.get("format", "xlsx") == "csv":
        return Response(
            iter_csv(headers, rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"}
        )

    return send_file(
        to_xlsx(headers, rows),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=f"{filename}.xlsx"
    )


# =====================
# RUN
# =====================
if __name__ == "__main__":
    create_app().run(debug=True)
