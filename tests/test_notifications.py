"""Tests for expiration notices."""

import smtplib

import pytest

from shortlink.schemas.user import RegisterRequest
from shortlink.services import link as link_service
from shortlink.services import user as user_service
from shortlink.services.notifications import ExpirationNotifier


@pytest.fixture
def smtp_settings(settings):
    return settings.model_copy(
        update={
            "smtp_user": "mailer",
            "smtp_password": "mailer-pass",
            "from_email": "noreply@sho.rt",
        }
    )


@pytest.fixture
async def owner(session):
    return await user_service.register_user(
        session,
        RegisterRequest(email="alice@acme.io", password="s3cret-pass", name="Alice"),
    )


@pytest.fixture
async def links(session, owner):
    await link_service.insert_link(session, "soon01", "https://example.com/soon", 2, owner_id=owner.id)
    await link_service.insert_link(session, "later1", "https://example.com/later", 48, owner_id=owner.id)
    await link_service.insert_link(session, "anon01", "https://example.com/anon", 2)


async def test_emails_owners_of_links_expiring_within_a_day(session, smtp_settings, links):
    outbox = []
    notifier = ExpirationNotifier(smtp_settings, sender=outbox.append)

    report = await notifier.send_expiration_notices(session)

    assert (report.sent, report.failed) == (1, 0)
    assert len(outbox) == 1
    message = outbox[0]
    assert message["To"] == "alice@acme.io"
    assert message["Subject"] == "Your shortened URL is about to expire"
    body = message.get_content()
    assert "Hello Alice" in body
    assert "https://sho.rt/soon01" in body
    assert "https://example.com/soon" in body


async def test_send_failure_is_counted_and_batch_continues(session, smtp_settings, owner, links):
    await link_service.insert_link(session, "soon02", "https://example.com/soon2", 3, owner_id=owner.id)
    attempts = []

    def flaky_sender(message):
        attempts.append(message)
        if len(attempts) == 1:
            raise smtplib.SMTPServerDisconnected("connection lost")

    report = await ExpirationNotifier(smtp_settings, sender=flaky_sender).send_expiration_notices(session)

    assert len(attempts) == 2
    assert (report.sent, report.failed) == (1, 1)


async def test_skipped_when_smtp_is_not_configured(session, settings, links):
    outbox = []
    notifier = ExpirationNotifier(settings, sender=outbox.append)

    report = await notifier.send_expiration_notices(session)

    assert not notifier.enabled
    assert (report.sent, report.failed, report.skipped) == (0, 0, 0)
    assert outbox == []
