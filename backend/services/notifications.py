"""Outbound appointment notifications.

Notifications are sent after the booking transaction has committed, from a
FastAPI background task. Delivery is best effort: failures are logged and
dropped.
"""

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Iterable, Protocol

from backend.core import config
from backend.core.timeutils import as_utc
from backend.models.appointment import Appointment

logger = logging.getLogger(__name__)

BOOKING_CONFIRMATION = 'booking_confirmation'
BOOKING_CANCELLATION = 'booking_cancellation'

TEMPLATES = {
    BOOKING_CONFIRMATION: (
        'Appointment Confirmation',
        'Your appointment has been confirmed with the following details:',
    ),
    BOOKING_CANCELLATION: (
        'Appointment Cancellation',
        'Your appointment has been cancelled with the following details:',
    ),
}


@dataclass(frozen=True)
class Notification:
    recipient: str
    template: str
    data: dict = field(default_factory=dict)


class Notifier(Protocol):
    def send(self, notification: Notification) -> None: ...


def render(notification: Notification) -> tuple[str, str]:
    """Return the subject and HTML body for ``notification``."""
    subject, intro = TEMPLATES[notification.template]
    data = notification.data
    body = (
        f"<h2>{subject}</h2>"
        f"<p>Dear {data['recipient_name']},</p>"
        f"<p>{intro}</p>"
        "<ul>"
        f"<li><strong>Doctor:</strong> {data['doctor_name']}</li>"
        f"<li><strong>Patient:</strong> {data['patient_name']}</li>"
        f"<li><strong>Date:</strong> {data['date']}</li>"
        f"<li><strong>Time:</strong> {data['start_time']} - {data['end_time']}</li>"
        f"<li><strong>Location:</strong> {data['location']}</li>"
        "</ul>"
        "<p>Thank you for using our service.</p>"
    )
    return subject, body


def build_appointment_notifications(template: str, appointment: Appointment) -> list[Notification]:
    if template not in TEMPLATES:
        raise ValueError(f'Unknown notification template: {template}')

    tz = config.get_booking_timezone()
    start = as_utc(appointment.slot.start_time).astimezone(tz)
    end = as_utc(appointment.slot.end_time).astimezone(tz)
    doctor = appointment.doctor
    patient = appointment.patient

    shared = {
        'appointment_id': appointment.id,
        'doctor_name': doctor.name,
        'patient_name': patient.name,
        'date': start.date().isoformat(),
        'start_time': start.strftime('%H:%M'),
        'end_time': end.strftime('%H:%M'),
        'location': appointment.slot.location,
    }
    return [
        Notification(patient.email, template, {**shared, 'recipient_name': patient.name}),
        Notification(doctor.email, template, {**shared, 'recipient_name': doctor.name}),
    ]


class LoggingNotifier:
    """Used when no SMTP server is configured."""

    def send(self, notification: Notification) -> None:
        subject, _ = render(notification)
        logger.info('Notification %s for %s: %s', notification.template, notification.recipient, subject)


class SmtpNotifier:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool,
        from_address: str,
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, context=ssl.create_default_context(), timeout=self.timeout)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            server.starttls(context=ssl.create_default_context())
        return server

    def send(self, notification: Notification) -> None:
        subject, html_body = render(notification)

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_address
        msg['To'] = notification.recipient
        msg.attach(MIMEText(html_body, 'html'))

        server = self._connect()
        try:
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address.split('<')[-1].rstrip('>'), [notification.recipient], msg.as_string())
        finally:
            server.quit()
        logger.info('Email %s sent to %s via %s', notification.template, notification.recipient, self.host)


def get_notifier() -> Notifier | None:
    if not config.NOTIFICATIONS_ENABLED:
        return None
    if not config.SMTP_HOST:
        return LoggingNotifier()
    return SmtpNotifier(
        host=config.SMTP_HOST,
        port=config.SMTP_PORT,
        username=config.SMTP_USERNAME,
        password=config.SMTP_PASSWORD,
        use_tls=config.SMTP_USE_TLS,
        from_address=config.EMAIL_FROM_ADDRESS,
    )


def dispatch_notifications(notifier: Notifier | None, notifications: Iterable[Notification]) -> int:
    """Send each notification independently. Returns how many were delivered."""
    if notifier is None:
        return 0

    delivered = 0
    for notification in notifications:
        try:
            notifier.send(notification)
        except Exception:
            logger.exception(
                'Failed to send %s notification to %s',
                notification.template,
                notification.recipient,
            )
            continue
        delivered += 1
    return delivered
