"""Expiration notice trigger."""

from fastapi import APIRouter

from shortlink.core.database import AsyncSessionDep
from shortlink.core.deps import CurrentUser, SettingsDep
from shortlink.schemas.notification import NotificationResponse
from shortlink.services.notifications import ExpirationNotifier

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/send", response_model=NotificationResponse)
async def send_expiration_notifications(
    user: CurrentUser,
    session: AsyncSessionDep,
    settings: SettingsDep,
) -> NotificationResponse:
    """Email the owners of links that expire within 24 hours."""
    notifier = ExpirationNotifier(settings)
    report = await notifier.send_expiration_notices(session)
    message = "Notifications sent" if notifier.enabled else "Email is not configured"
    return NotificationResponse(
        message=message,
        sent=report.sent,
        failed=report.failed,
        skipped=report.skipped,
    )
