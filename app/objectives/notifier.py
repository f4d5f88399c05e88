"""Direct-message delivery through the Discord REST API."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.objectives.errors import NotificationError

logger = logging.getLogger(__name__)


def reminder_text(objective_name: str, hours: int = 24) -> str:
    return (
        f'⏰ Reminder: You haven\'t submitted your objective "**{objective_name}**" '
        f"in the last {hours} hours. Don't forget to keep your streak going!"
    )


class Notifier(Protocol):
    async def send_direct_message(self, user_id: str, text: str) -> None:
        """Deliver `text` to `user_id`. Raises NotificationError on failure."""


class DiscordNotifier:
    """Opens (or reuses) the DM channel with a user, then posts into it."""

    def __init__(self, client: httpx.AsyncClient, bot_token: str, api_base: str = "https://discord.com/api/v10"):
        self._client = client
        self._headers = {"Authorization": f"Bot {bot_token}"}
        self._api_base = api_base.rstrip("/")

    async def send_direct_message(self, user_id: str, text: str) -> None:
        try:
            resp = await self._client.post(
                f"{self._api_base}/users/@me/channels",
                json={"recipient_id": user_id},
                headers=self._headers,
            )
            resp.raise_for_status()
            channel_id = resp.json()["id"]

            resp = await self._client.post(
                f"{self._api_base}/channels/{channel_id}/messages",
                json={"content": text},
                headers=self._headers,
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"DM to {user_id} failed: {exc}") from exc
        except (KeyError, ValueError) as exc:
            raise NotificationError(f"DM to {user_id} failed: malformed channel response") from exc
        logger.debug("DM delivered to %s", user_id)
