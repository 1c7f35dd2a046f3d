import logging

import pytest

from backend.core import config
from backend.services import booking, notifications
from backend.services.notifications import (
    BOOKING_CANCELLATION,
    BOOKING_CONFIRMATION,
    LoggingNotifier,
    Notification,
    SmtpNotifier,
    build_appointment_notifications,
    dispatch_notifications,
    get_notifier,
    render,
)


class RecordingNotifier:
    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[Notification] = []
        self.fail_for = fail_for or set()

    def send(self, notification: Notification) -> None:
        if notification.recipient in self.fail_for:
            raise ConnectionError('SMTP server unreachable')
        self.sent.append(notification)


@pytest.fixture
def booked_appointment(db_session, make_doctor, make_patient, make_slot, tomorrow_at):
    doctor = make_doctor(name='Dr. Grey', email='grey@example.com')
    patient = make_patient(name='Pat Doe', email='pat@example.com')
    slot = make_slot(doctor, tomorrow_at(10), tomorrow_at(10, 30), location='Clinic A')
    return booking.reserve(db_session, slot.id, patient.id)


def test_build_appointment_notifications_addresses_patient_then_doctor(booked_appointment, tomorrow_at) -> None:
    patient_note, doctor_note = build_appointment_notifications(BOOKING_CONFIRMATION, booked_appointment)

    assert patient_note.recipient == 'pat@example.com'
    assert patient_note.data['recipient_name'] == 'Pat Doe'
    assert doctor_note.recipient == 'grey@example.com'
    assert doctor_note.data['recipient_name'] == 'Dr. Grey'
    assert patient_note.data['date'] == tomorrow_at(10).date().isoformat()
    assert patient_note.data['start_time'] == '10:00'
    assert patient_note.data['end_time'] == '10:30'
    assert patient_note.data['location'] == 'Clinic A'


def test_build_appointment_notifications_rejects_unknown_template(booked_appointment) -> None:
    with pytest.raises(ValueError):
        build_appointment_notifications('reminder', booked_appointment)


def test_render_cancellation_includes_details(booked_appointment) -> None:
    notification = build_appointment_notifications(BOOKING_CANCELLATION, booked_appointment)[1]

    subject, body = render(notification)

    assert subject == 'Appointment Cancellation'
    assert 'Dear Dr. Grey' in body
    assert '<strong>Patient:</strong> Pat Doe' in body
    assert '10:00 - 10:30' in body


def test_dispatch_notifications_logs_and_skips_failures(caplog: pytest.LogCaptureFixture) -> None:
    notifier = RecordingNotifier(fail_for={'a@example.com'})
    batch = [
        Notification('a@example.com', BOOKING_CONFIRMATION, {}),
        Notification('b@example.com', BOOKING_CONFIRMATION, {}),
    ]

    with caplog.at_level(logging.ERROR, logger=notifications.__name__):
        delivered = dispatch_notifications(notifier, batch)

    assert delivered == 1
    assert [n.recipient for n in notifier.sent] == ['b@example.com']
    assert 'Failed to send booking_confirmation notification to a@example.com' in caplog.text


def test_dispatch_notifications_without_notifier_sends_nothing() -> None:
    assert dispatch_notifications(None, [Notification('a@example.com', BOOKING_CONFIRMATION, {})]) == 0


def test_get_notifier_follows_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'NOTIFICATIONS_ENABLED', False)
    assert get_notifier() is None

    monkeypatch.setattr(config, 'NOTIFICATIONS_ENABLED', True)
    monkeypatch.setattr(config, 'SMTP_HOST', '')
    assert isinstance(get_notifier(), LoggingNotifier)

    monkeypatch.setattr(config, 'SMTP_HOST', 'smtp.example.com')
    notifier = get_notifier()
    assert isinstance(notifier, SmtpNotifier)
    assert notifier.host == 'smtp.example.com'


def test_smtp_notifier_sends_html_message(monkeypatch: pytest.MonkeyPatch, booked_appointment) -> None:
    calls: list[tuple] = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            calls.append(('connect', host, port))

        def starttls(self, context):
            calls.append(('starttls',))

        def login(self, username, password):
            calls.append(('login', username))

        def sendmail(self, sender, recipients, message):
            calls.append(('sendmail', sender, recipients, message))

        def quit(self):
            calls.append(('quit',))

    monkeypatch.setattr(notifications.smtplib, 'SMTP', FakeSMTP)
    notifier = SmtpNotifier(
        host='smtp.example.com',
        port=587,
        username='mailer',
        password='secret',
        use_tls=True,
        from_address='Clinic <no-reply@example.com>',
    )

    notifier.send(build_appointment_notifications(BOOKING_CONFIRMATION, booked_appointment)[0])

    assert [call[0] for call in calls] == ['connect', 'starttls', 'login', 'sendmail', 'quit']
    _, sender, recipients, message = calls[3]
    assert sender == 'no-reply@example.com'
    assert recipients == ['pat@example.com']
    assert 'Subject: Appointment Confirmation' in message
