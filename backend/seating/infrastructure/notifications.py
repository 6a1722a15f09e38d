from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Protocol

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)
FRENCH_DAYS = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")


@dataclass(frozen=True)
class ConfirmationDetails:
    reservation_id: int
    reservation_date: date
    start_time: time
    number_of_guests: int


class ConfirmationSender(Protocol):
    async def send_confirmation(
        self,
        email: str,
        first_name: str,
        last_name: str,
        details: ConfirmationDetails,
    ) -> None: ...


def format_long_date(value: date) -> str:
    return f"{FRENCH_DAYS[value.weekday()]} {value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def render_confirmation(first_name: str, last_name: str, details: ConfirmationDetails) -> tuple[str, str]:
    plural = "s" if details.number_of_guests > 1 else ""
    subject = "Confirmation de votre réservation"
    body = (
        f"<h1>Réservation confirmée !</h1>"
        f"<p>Bonjour {first_name} {last_name},</p>"
        f"<p>Date : {format_long_date(details.reservation_date)}<br>"
        f"Heure : {details.start_time.strftime('%H:%M')}<br>"
        f"Nombre de personnes : {details.number_of_guests} personne{plural}<br>"
        f"Numéro de réservation : #{details.reservation_id}</p>"
    )
    return subject, body


class LoggingConfirmationSender:
    """Used when no mail provider is configured."""

    async def send_confirmation(
        self,
        email: str,
        first_name: str,
        last_name: str,
        details: ConfirmationDetails,
    ) -> None:
        subject, _ = render_confirmation(first_name, last_name, details)
        logger.info("confirmation for reservation #%s to %s: %s", details.reservation_id, email, subject)


class ResendConfirmationSender:
    def __init__(self, *, api_key: str, api_url: str, sender: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.timeout = timeout

    async def send_confirmation(
        self,
        email: str,
        first_name: str,
        last_name: str,
        details: ConfirmationDetails,
    ) -> None:
        subject, html = render_confirmation(first_name, last_name, details)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.sender, "to": [email], "subject": subject, "html": html},
            )
            resp.raise_for_status()


def build_confirmation_sender(settings: Settings) -> ConfirmationSender:
    if settings.resend_api_key:
        return ResendConfirmationSender(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            sender=settings.mail_from,
        )
    return LoggingConfirmationSender()


async def dispatch_confirmation(
    sender: ConfirmationSender,
    *,
    email: str,
    first_name: str,
    last_name: str,
    details: ConfirmationDetails,
) -> bool:
    """Best effort: a failed notification never fails the booking. Returns True when sent."""
    try:
        await sender.send_confirmation(email, first_name, last_name, details)
    except Exception:
        logger.exception("failed to send confirmation for reservation #%s", details.reservation_id)
        return False
    return True
