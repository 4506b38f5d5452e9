"""Message text for Telegram notifications (HTML parse mode)."""

from __future__ import annotations

from datetime import datetime
from html import escape


def format_date(value: datetime | None) -> str:
    """Format as DD/MM/YYYY."""
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y")


def format_time(value: datetime | None) -> str:
    """Format as HH:MM."""
    if value is None:
        return "-"
    return value.strftime("%H:%M")


def accept_url(frontend_url: str, appointment_id: int) -> str:
    """Link the teacher opens to accept an assigned appointment."""
    return f"{frontend_url.rstrip('/')}/teacher/accept-appointment/{appointment_id}"


def teacher_assigned_message(student_name: str, start_time: datetime, assignment: str | None) -> str:
    lines = [
        "\U0001f4c5 <b>New appointment assigned</b>",
        f"Student: {escape(student_name)}",
        f"Date: {format_date(start_time)}",
        f"Time: {format_time(start_time)}",
    ]
    if assignment:
        lines.append(f"Task: {escape(assignment)}")
    lines.append("Please accept the appointment as soon as possible.")
    return "\n".join(lines)


def appointment_booked_message(student_name: str, start_time: datetime, section: str | None) -> str:
    return "\n".join([
        "\U0001f195 <b>New appointment booked</b>",
        f"Student: {escape(student_name)}",
        f"Section: {escape(section or '-')}",
        f"Date: {format_date(start_time)}",
        f"Time: {format_time(start_time)}",
        "A teacher still needs to be assigned.",
    ])
