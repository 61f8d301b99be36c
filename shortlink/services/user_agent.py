"""User-Agent parsing for click analytics."""

from dataclasses import dataclass

from user_agents import parse


@dataclass(frozen=True)
class ClientInfo:
    browser: str
    version: str
    os: str
    device_type: str  # desktop, mobile, tablet, bot
    is_bot: bool

    @property
    def browser_label(self) -> str:
        """Browser family and version, as stored on a click."""
        return f"{self.browser} {self.version}".strip()


def parse_user_agent(user_agent: str | None) -> ClientInfo:
    ua = parse(user_agent or "")

    if ua.is_bot:
        device_type = "bot"
    elif ua.is_tablet:
        device_type = "tablet"
    elif ua.is_mobile:
        device_type = "mobile"
    else:
        device_type = "desktop"

    return ClientInfo(
        browser=ua.browser.family,
        version=ua.browser.version_string,
        os=f"{ua.os.family} {ua.os.version_string}".strip(),
        device_type=device_type,
        is_bot=ua.is_bot,
    )
