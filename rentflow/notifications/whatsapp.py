from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from rentflow.exceptions import WhatsAppDeliveryError
from rentflow.models.notification import ProviderResult, WhatsAppMessage
from rentflow.settings import Settings

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
GRAPH_API_BASE = "https://graph.facebook.com"


def normalize_phone(phone: str, default_prefix: str = "+91") -> str:
    """'9876543210' -> '+919876543210'. Numbers already in '+' form are kept."""
    phone = phone.strip()
    if phone.lower().startswith("whatsapp:"):
        phone = phone[len("whatsapp:") :].strip()
    if phone.startswith("+"):
        return phone
    return f"{default_prefix}{phone}"


class WhatsAppChannel(ABC):
    """One WhatsApp provider. ``send`` raises WhatsAppDeliveryError on any failure."""

    name = "whatsapp"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    @abstractmethod
    async def send(self, phone: str, message: WhatsAppMessage) -> ProviderResult: ...

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._client is not None:
                response = await self._client.post(url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.settings.provider_timeout) as client:
                    response = await client.post(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise WhatsAppDeliveryError(
                f"{self.name} returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise WhatsAppDeliveryError(f"{self.name} request failed: {exc}") from exc
        return response

    def _json(self, response: httpx.Response) -> dict:
        """Body of an accepted request. A body that is not a JSON object counts as a failed send."""
        try:
            data = response.json()
        except ValueError as exc:
            raise WhatsAppDeliveryError(
                f"{self.name} returned {response.status_code} with a non-JSON body: {response.text[:200]}"
            ) from exc
        if not isinstance(data, dict):
            raise WhatsAppDeliveryError(f"{self.name} returned an unexpected body: {response.text[:200]}")
        return data


class TwilioWhatsAppChannel(WhatsAppChannel):
    name = "twilio"

    async def send(self, phone: str, message: WhatsAppMessage) -> ProviderResult:
        s = self.settings
        sender = s.twilio_whatsapp_from
        if not sender.startswith("whatsapp:"):
            sender = f"whatsapp:{sender}"

        form = {"From": sender, "To": f"whatsapp:{phone}"}
        if s.twilio_template_sid and message.variables:
            form["ContentSid"] = s.twilio_template_sid
            form["ContentVariables"] = json.dumps(message.variables, ensure_ascii=False)
        else:
            form["Body"] = message.text

        response = await self._post(
            f"{TWILIO_API_BASE}/Accounts/{s.twilio_account_sid}/Messages.json",
            data=form,
            auth=(s.twilio_account_sid, s.twilio_auth_token),
        )
        data = self._json(response)
        return ProviderResult(provider=self.name, message_id=data.get("sid"), status_code=response.status_code)


class CloudApiWhatsAppChannel(WhatsAppChannel):
    name = "whatsapp_cloud"

    def build_payload(self, phone: str, message: WhatsAppMessage) -> dict:
        to = phone.lstrip("+")
        s = self.settings
        if s.whatsapp_cloud_template_name and message.variables:
            parameters = [
                {"type": "text", "text": message.variables[k]}
                for k in sorted(message.variables, key=int)
            ]
            return {
                "messaging_product": "whatsapp",
                "to": to,
                "type": "template",
                "template": {
                    "name": s.whatsapp_cloud_template_name,
                    "language": {"code": s.whatsapp_template_language},
                    "components": [{"type": "body", "parameters": parameters}],
                },
            }
        return {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": message.text},
        }

    async def send(self, phone: str, message: WhatsAppMessage) -> ProviderResult:
        s = self.settings
        response = await self._post(
            f"{GRAPH_API_BASE}/{s.whatsapp_cloud_api_version}/{s.whatsapp_phone_id}/messages",
            json=self.build_payload(phone, message),
            headers={"Authorization": f"Bearer {s.whatsapp_cloud_api_token}"},
        )
        messages = self._json(response).get("messages") or [{}]
        if not isinstance(messages, list) or not isinstance(messages[0], dict):
            raise WhatsAppDeliveryError(f"{self.name} returned an unexpected body: {response.text[:200]}")
        return ProviderResult(
            provider=self.name,
            message_id=messages[0].get("id"),
            status_code=response.status_code,
        )


class WhatsAppDispatcher:
    """Tries each configured channel in order until one accepts the message."""

    def __init__(self, channels: list[WhatsAppChannel], default_prefix: str = "+91") -> None:
        self.channels = channels
        self.default_prefix = default_prefix

    @property
    def configured(self) -> bool:
        return bool(self.channels)

    async def send(self, phone: str, message: WhatsAppMessage) -> ProviderResult | None:
        if not self.channels:
            logger.warning("No WhatsApp provider configured, message to %s not sent", phone)
            return None

        to = normalize_phone(phone, self.default_prefix)
        last_error: Exception | None = None
        for channel in self.channels:
            try:
                result = await channel.send(to, message)
            except WhatsAppDeliveryError as exc:
                logger.warning("WhatsApp via %s failed for %s: %s", channel.name, to, exc)
                last_error = exc
                continue
            except Exception as exc:
                logger.exception("WhatsApp via %s raised unexpectedly for %s", channel.name, to)
                last_error = exc
                continue
            logger.info("WhatsApp sent to %s via %s (id=%s)", to, channel.name, result.message_id)
            return result

        raise WhatsAppDeliveryError(f"All WhatsApp providers failed for {to}") from last_error


def build_channels(settings: Settings, client: httpx.AsyncClient | None = None) -> list[WhatsAppChannel]:
    """Configured channels in priority order: Twilio first, Cloud API as fallback."""
    channels: list[WhatsAppChannel] = []
    if settings.twilio_configured:
        channels.append(TwilioWhatsAppChannel(settings, client))
    if settings.whatsapp_cloud_configured:
        channels.append(CloudApiWhatsAppChannel(settings, client))
    return channels
