"""
Admin report export: flat row projections of events, registrations and users,
and the CSV / Excel writers used by the download views.
"""
import csv
import io

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

EVENT_HEADERS = [
    "Event ID", "Title", "Description", "Date", "Time", "Location", "Category",
    "Created By", "Creator Role", "Status", "Max Participants", "Created At",
]
REGISTRATION_HEADERS = [
    "Registration ID", "Event Title", "User Name", "User Email", "Role",
    "Department", "Roll/ID Number", "Registered At",
]
USER_HEADERS = [
    "User ID", "Name", "Email", "Role", "Department", "Roll Number",
    "ID Number", "Study Year", "Created At",
]

REPORT_FILENAMES = {
    "events": "events_data",
    "registrations": "registrations_data",
    "users": "users_data",
}


def _day(timestamp):
    return (timestamp or "")[:10]


def event_rows(events):
    return [
        [
            event.id, event.title, event.description, event.date, event.time,
            event.location, event.category, event.created_by_name,
            event.created_by_role, event.status,
            event.max_participants or "Unlimited", _day(event.created_at),
        ]
        for event in events
    ]


def registration_rows(registrations, events):
    titles = {event.id: event.title for event in events}
    return [
        [
            reg.id, titles.get(reg.event_id, "Unknown Event"), reg.user_name,
            reg.user_email, reg.user_role, reg.department,
            reg.roll_no or reg.id_no or "N/A", _day(reg.registered_at),
        ]
        for reg in registrations
    ]


def user_rows(users):
    return [
        [
            user.id, user.name, user.email, user.role, user.department,
            getattr(user, "roll_no", None) or "N/A",
            getattr(user, "id_no", None) or "N/A",
            getattr(user, "study_year", None) or "N/A",
            _day(user.created_at),
        ]
        for user in users
    ]


def build_rows(kind, portal):
    """Return ``(headers, rows)`` for one report kind."""
    if kind == "events":
        return EVENT_HEADERS, event_rows(portal.list_events())
    if kind == "registrations":
        return REGISTRATION_HEADERS, registration_rows(portal.list_registrations(), portal.list_events())
    if kind == "users":
        return USER_HEADERS, user_rows(portal.list_users())
    raise ValueError(f"Unknown report: {kind}")


def iter_csv(headers, rows):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for row in [headers, *rows]:
        writer.writerow(row)
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)


def to_xlsx(headers, rows, title="Data"):
    wb = Workbook()
    ws = wb.active
    ws.title = title

    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment

    for row_num, row in enumerate(rows, 2):
        for col_num, value in enumerate(row, 1):
            ws.cell(row=row_num, column=col_num, value=value)

    for column in ws.columns:
        width = max(len(str(cell.value)) for cell in column if cell.value is not None)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output
