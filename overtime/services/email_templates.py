"""Static per-language e-mail tables and a pure renderer over them.

Employees and leaders read Polish; managers, HR and administrators read
English. Adding a language means adding a table entry, not a branch.
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from overtime.models.enums import NotificationKind
from overtime.services.authz import MANAGERIAL_ROLES

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from overtime.models.enums import Role

EmailLang = Literal["pl", "en"]

DEFAULT_LANG: EmailLang = "pl"


class RenderedEmail(BaseModel):
    subject: str
    html: str
    lang: EmailLang


_STYLES = {
    "body": "font-family: Arial, sans-serif; font-size: 14px; color: #222;",
    "button": (
        "display: inline-block; padding: 10px 20px; font-size: 16px; color: white; "
        "background-color: #007bff; text-decoration: none; border-radius: 5px;"
    ),
    "separator": "border: none; border-top: 1px solid #ccc; margin: 20px 0;",
    "footer": "font-size: 12px; color: #666;",
}

_LABELS: dict[EmailLang, dict[str, str]] = {
    "pl": {
        "internal_id": "Numer",
        "hours": "Liczba godzin",
        "work_date": "Data",
        "reason": "Uzasadnienie",
        "rejection_reason": "Powód odrzucenia",
        "cancellation_reason": "Powód anulowania",
        "correction_reason": "Powód korekty",
        "corrected_by": "Skorygował(a)",
        "created_by": "Utworzył(a)",
        "employee": "Pracownik",
        "total_hours": "Saldo nadgodzin",
        "note": "Komentarz",
        "sent_by": "Wysłał(a)",
        "footer": "Wiadomość wygenerowana automatycznie, prosimy na nią nie odpowiadać.",
    },
    "en": {
        "internal_id": "Number",
        "hours": "Hours",
        "work_date": "Date",
        "reason": "Reason",
        "rejection_reason": "Rejection reason",
        "cancellation_reason": "Cancellation reason",
        "correction_reason": "Correction reason",
        "corrected_by": "Corrected by",
        "created_by": "Created by",
        "employee": "Employee",
        "total_hours": "Overtime balance",
        "note": "Comment",
        "sent_by": "Sent by",
        "footer": "This message was generated automatically, please do not reply.",
    },
}

_TEMPLATES: dict[NotificationKind, dict[EmailLang, dict[str, str]]] = {
    NotificationKind.APPROVED: {
        "pl": {
            "subject": "Zatwierdzone nadgodziny ({internal_id})",
            "message": "Twoje zgłoszenie nadgodzin zostało zatwierdzone.",
            "button": "Otwórz zgłoszenie",
        },
        "en": {
            "subject": "Approved overtime ({internal_id})",
            "message": "Your overtime request has been approved.",
            "button": "Open request",
        },
    },
    NotificationKind.REJECTED: {
        "pl": {
            "subject": "Odrzucone nadgodziny ({internal_id})",
            "message": "Twoje zgłoszenie nadgodzin zostało odrzucone.",
            "button": "Otwórz zgłoszenie",
        },
        "en": {
            "subject": "Rejected overtime ({internal_id})",
            "message": "Your overtime request has been rejected.",
            "button": "Open request",
        },
    },
    NotificationKind.CANCELLED: {
        "pl": {
            "subject": "Anulowane nadgodziny ({internal_id})",
            "message": "Twoje zgłoszenie nadgodzin zostało anulowane.",
            "button": "Otwórz zgłoszenie",
        },
        "en": {
            "subject": "Cancelled overtime ({internal_id})",
            "message": "Your overtime request has been cancelled.",
            "button": "Open request",
        },
    },
    NotificationKind.CORRECTED: {
        "pl": {
            "subject": "Skorygowane zgłoszenie nadgodzin ({internal_id})",
            "message": "Twoje zgłoszenie nadgodzin zostało skorygowane.",
            "button": "Otwórz zgłoszenie",
        },
        "en": {
            "subject": "Corrected overtime request ({internal_id})",
            "message": "Your overtime request has been corrected.",
            "button": "Open request",
        },
    },
    NotificationKind.ORDER_CREATED: {
        "pl": {
            "subject": "Nowe zlecenie wykonania pracy w godzinach nadliczbowych ({internal_id})",
            "message": "Utworzono dla Ciebie zlecenie wykonania pracy w godzinach nadliczbowych.",
            "button": "Otwórz zlecenie",
        },
        "en": {
            "subject": "New overtime work order ({internal_id})",
            "message": "An overtime work order has been created for you.",
            "button": "Open order",
        },
    },
    NotificationKind.BALANCE_REMINDER: {
        "pl": {
            "subject": "Przypomnienie o saldzie nadgodzin",
            "message": "Masz nierozliczone nadgodziny. Prosimy o odbiór godzin lub złożenie wniosku o wypłatę.",
            "button": "Otwórz nadgodziny",
        },
        "en": {
            "subject": "Overtime balance reminder",
            "message": "You have unsettled overtime hours. Please schedule time off or request a payout.",
            "button": "Open overtime",
        },
    },
    NotificationKind.SUPERVISOR_BALANCE: {
        "pl": {
            "subject": "Saldo nadgodzin pracownika: {employee_name}",
            "message": "Pracownik z Twojego zespołu ma nierozliczone nadgodziny. Prosimy o zaplanowanie ich odbioru.",
            "button": "Otwórz salda",
        },
        "en": {
            "subject": "Overtime balance of {employee_name}",
            "message": "An employee on your team has unsettled overtime hours. Please plan how they will be settled.",
            "button": "Open balances",
        },
    },
}

# Context keys rendered as a detail row under the message, in display order.
_DETAIL_FIELDS: dict[NotificationKind, tuple[str, ...]] = {
    NotificationKind.APPROVED: ("internal_id", "hours", "work_date"),
    NotificationKind.REJECTED: ("internal_id", "hours", "rejection_reason"),
    NotificationKind.CANCELLED: ("internal_id", "hours", "cancellation_reason"),
    NotificationKind.CORRECTED: ("internal_id", "corrected_by", "correction_reason"),
    NotificationKind.ORDER_CREATED: ("internal_id", "hours", "work_date", "created_by", "reason"),
    NotificationKind.BALANCE_REMINDER: ("total_hours", "note"),
    NotificationKind.SUPERVISOR_BALANCE: ("employee", "total_hours", "sent_by", "note"),
}


def language_for_roles(roles: Iterable[Role]) -> EmailLang:
    """Managerial recipients get English; everyone else gets Polish."""
    return "en" if any(role in MANAGERIAL_ROLES for role in roles) else DEFAULT_LANG


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def render_email(kind: NotificationKind, lang: EmailLang, context: Mapping[str, Any]) -> RenderedEmail:
    """Render the subject and HTML body for one notification.

    ``context`` values are escaped before interpolation. ``url`` is the link
    target of the call-to-action button; detail rows are skipped when their
    value is missing or empty.
    """
    template = _TEMPLATES[kind][lang]
    labels = _LABELS[lang]
    escaped = {key: html.escape(_format_value(value)) for key, value in context.items() if value is not None}

    subject_values = {"internal_id": "", **escaped}
    subject = html.unescape(template["subject"].format_map(subject_values)).replace(" ()", "")

    rows = [
        f"<p><strong>{labels[field]}:</strong> {escaped[field]}</p>"
        for field in _DETAIL_FIELDS[kind]
        if escaped.get(field)
    ]
    parts = [f'<div style="{_STYLES["body"]}">', f"<p>{template['message']}</p>", *rows]
    if escaped.get("url"):
        parts.append(f'<p><a href="{escaped["url"]}" style="{_STYLES["button"]}">{template["button"]}</a></p>')
    parts.append(f'<hr style="{_STYLES["separator"]}">')
    parts.append(f'<p style="{_STYLES["footer"]}">{labels["footer"]}</p>')
    parts.append("</div>")

    return RenderedEmail(subject=subject, html="\n".join(parts), lang=lang)
