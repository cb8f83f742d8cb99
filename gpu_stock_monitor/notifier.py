"""Stock alert notifiers.

Two channels are supported: a Discord webhook and SMS through the Twilio
REST API.  Both raise :class:`NotifyError` when delivery fails; the
monitor loop logs that and carries on with the next target.
"""
from __future__ import annotations

import logging

import requests

from .config import Channel, NotificationSettings
from .utils import NotifyError, raise_for_status

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def format_discord_message(target_name: str, target_url: str) -> str:
    return f"**GPU In Stock**: {target_name}\n{target_url}"


def format_sms_body(target_name: str, target_url: str) -> str:
    return f"GPU In Stock: {target_name} - {target_url}"


class Notifier:
    """Base class for alert channels."""

    channel: Channel

    def __init__(self, session: requests.Session, timeout: float = 20):
        self.session = session
        self.timeout = timeout

    def notify(self, target_name: str, target_url: str) -> None:
        raise NotImplementedError

    def _post(self, url: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.post(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise NotifyError(f"{self.channel.value} notification request failed: {e}") from e
        try:
            raise_for_status(resp, NotifyError)
        except NotifyError as e:
            raise NotifyError(f"Failed to send {self.channel.value} notification: {e}") from e
        return resp


class DiscordNotifier(Notifier):
    channel = Channel.DISCORD

    def __init__(self, webhook_url: str, session: requests.Session, timeout: float = 20):
        super().__init__(session, timeout)
        self.webhook_url = webhook_url

    def notify(self, target_name: str, target_url: str) -> None:
        payload = {"content": format_discord_message(target_name, target_url)}
        logger.info("Sending Discord notification for %s", target_name)
        self._post(self.webhook_url, json=payload)


class SmsNotifier(Notifier):
    """Twilio SMS sender.

    Fields are not validated here; with blank credentials the request is
    still made and Twilio's rejection surfaces as a NotifyError.
    """

    channel = Channel.SMS

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        to_number: str,
        session: requests.Session,
        timeout: float = 20,
    ):
        super().__init__(session, timeout)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.to_number = to_number

    @property
    def messages_url(self) -> str:
        return TWILIO_MESSAGES_URL.format(sid=self.account_sid)

    def notify(self, target_name: str, target_url: str) -> None:
        data = {
            "From": self.from_number,
            "To": self.to_number,
            "Body": format_sms_body(target_name, target_url),
        }
        logger.info("Sending SMS notification for %s to %s", target_name, self.to_number)
        self._post(
            self.messages_url,
            data=data,
            auth=(self.account_sid, self.auth_token),
        )


def build_notifier(
    settings: NotificationSettings,
    session: requests.Session,
    timeout: float = 20,
) -> Notifier:
    """Return the notifier for the configured channel."""
    if settings.channel is Channel.DISCORD:
        return DiscordNotifier(settings.discord_webhook_url, session, timeout=timeout)
    if settings.channel is Channel.SMS:
        return SmsNotifier(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_from_number,
            settings.twilio_to_number,
            session,
            timeout=timeout,
        )
    # Channel is closed; reaching here means a member was added without a notifier.
    raise ValueError(f"No notifier for channel {settings.channel!r}")


__all__ = [
    "DiscordNotifier",
    "Notifier",
    "SmsNotifier",
    "TWILIO_MESSAGES_URL",
    "build_notifier",
    "format_discord_message",
    "format_sms_body",
]
