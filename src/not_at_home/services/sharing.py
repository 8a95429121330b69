"""Share targets for session exports."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol
from urllib.parse import quote, urlencode

from not_at_home.domain.exports import ShareOutcome


class ShareTargetName(StrEnum):
    """Targets a session export can be shared to."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    CLIPBOARD = "clipboard"
    TELEGRAM = "telegram"


DEVICE_TARGETS = frozenset(
    {
        ShareTargetName.EMAIL,
        ShareTargetName.SMS,
        ShareTargetName.WHATSAPP,
        ShareTargetName.CLIPBOARD,
    }
)


class ShareTarget(Protocol):
    """Delivers an export somewhere outside the service."""

    async def share(self, title: str, text: str) -> ShareOutcome:
        """Share the export and report the outcome.

        May raise ``ShareError`` instead of returning ``FAILED``.
        """


@dataclass(frozen=True)
class ReportedShareTarget:
    """A share the client device already performed.

    Email, SMS, chat deep links and clipboard writes happen on the device, so
    the service can only act on the outcome the device reports.
    """

    outcome: ShareOutcome

    async def share(self, title: str, text: str) -> ShareOutcome:
        """Return the outcome reported by the device."""
        return self.outcome


def build_share_links(title: str, text: str) -> dict[str, str]:
    """Build draft links for the device share targets."""
    return {
        ShareTargetName.EMAIL.value: "mailto:?"
        + urlencode({"subject": title, "body": text}, quote_via=quote),
        ShareTargetName.SMS.value: "sms:?" + urlencode({"body": text}, quote_via=quote),
        ShareTargetName.WHATSAPP.value: "https://wa.me/?"
        + urlencode({"text": text}, quote_via=quote),
    }
