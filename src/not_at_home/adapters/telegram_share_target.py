"""Telegram share target for session exports."""

import logging
from dataclasses import dataclass

import httpx

from not_at_home.domain.errors import ShareError
from not_at_home.domain.exports import ShareOutcome

logger = logging.getLogger(__name__)

TELEGRAM_MESSAGE_LIMIT = 4096


@dataclass
class HttpxTelegramShareTarget:
    """Posts an export to a Telegram chat using httpx."""

    bot_token: str
    chat_id: int | str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, bot_token: str, chat_id: int | str
    ) -> "HttpxTelegramShareTarget":
        """Create a share target with a managed httpx session."""
        return cls(
            bot_token=bot_token, chat_id=chat_id, http_client=httpx.AsyncClient()
        )

    async def share(self, title: str, text: str) -> ShareOutcome:
        """Send the export and report success once Telegram accepted every part."""
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        for chunk in _split_message(f"{title}\n\n{text}"):
            payload: dict[str, object] = {"chat_id": self.chat_id, "text": chunk}
            try:
                response = await self.http_client.post(url, json=payload, timeout=10)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.warning("Telegram share failed", extra={"error": str(exc)})
                raise ShareError(f"Telegram share failed: {exc}") from exc
        return ShareOutcome.SUCCESS

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


def _split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split on line boundaries so each part fits in one Telegram message."""
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current or not chunks:
        chunks.append(current)
    return chunks
