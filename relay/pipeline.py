"""
Relay pipeline: one inbound WhatsApp text in, at most one AI reply out.

Runs as a background task after the webhook request has already been
acknowledged, so nothing here can reach the platform. Every failure ends the
event and is logged; side effects from earlier steps are kept.
"""

import enum
import logging

from fastapi.concurrency import run_in_threadpool

from relay.completion import CompletionClient
from relay.config import Settings
from relay.conversations import ConversationLog
from relay.delivery import DeliveryClient
from relay.directory import TenantDirectory
from relay.errors import DeliveryError, MalformedEvent, PersistenceError, ProviderError
from relay.events import InboundEvent, parse_event
from relay.models import INCOMING, OUTGOING, Tenant, utcnow

logger = logging.getLogger(__name__)


class RelayOutcome(str, enum.Enum):
    """Terminal state of one event."""

    DELIVERED = "delivered"
    # terminal without a reply, but not a failure: no OPENAI_API_KEY
    REPLY_DISABLED = "reply-disabled"
    ABORTED = "aborted"


class RelayPipeline:
    def __init__(
        self,
        settings: Settings,
        directory: TenantDirectory,
        log: ConversationLog,
        completion: CompletionClient | None,
        delivery: DeliveryClient,
    ):
        self.settings = settings
        self.directory = directory
        self.log = log
        self.completion = completion
        self.delivery = delivery

    async def handle_payload(self, payload) -> RelayOutcome:
        """Decode a raw webhook body and relay it; undecodable bodies are dropped."""
        try:
            event = parse_event(payload)
        except MalformedEvent as e:
            logger.debug("Ignoring webhook payload: %s", e)
            return RelayOutcome.ABORTED
        return await self.handle(event)

    async def handle(self, event: InboundEvent) -> RelayOutcome:
        try:
            return await self._relay(event)
        except Exception:
            logger.exception(
                "Unexpected failure relaying message from %s to %s",
                event.sender, event.routing_key,
            )
            return RelayOutcome.ABORTED

    def system_prompt_for(self, tenant: Tenant) -> str:
        prompt = (tenant.system_prompt or "").strip()
        return prompt or self.settings.default_system_prompt

    def credential_for(self, tenant: Tenant) -> str | None:
        return tenant.delivery_credential or self.settings.whatsapp_token

    async def _relay(self, event: InboundEvent) -> RelayOutcome:
        try:
            tenant = await run_in_threadpool(self.directory.resolve, event.routing_key)
        except PersistenceError as e:
            logger.error("Tenant lookup for %s failed: %s", event.routing_key, e)
            return RelayOutcome.ABORTED
        if tenant is None:
            logger.warning(
                "No project for routing key %s; dropping message from %s",
                event.routing_key, event.sender,
            )
            return RelayOutcome.ABORTED

        metadata = {"wa_message_id": event.message_id} if event.message_id else {}
        try:
            await run_in_threadpool(
                self.log.append,
                tenant.id,
                event.sender,
                event.routing_key,
                event.text,
                INCOMING,
                event.timestamp or utcnow(),
                metadata,
            )
        except PersistenceError as e:
            logger.error("Project %s: inbound message not stored, aborting: %s", tenant.id, e)
            return RelayOutcome.ABORTED

        prompt = self.system_prompt_for(tenant)

        if self.completion is None:
            logger.info("Project %s: completion disabled, no reply generated", tenant.id)
            return RelayOutcome.REPLY_DISABLED

        try:
            reply = await self.completion.complete(prompt, event.text)
        except ProviderError as e:
            logger.error("Project %s: completion failed: %s", tenant.id, e)
            return RelayOutcome.ABORTED

        try:
            await run_in_threadpool(
                self.log.append,
                tenant.id,
                event.routing_key,
                event.sender,
                reply,
                OUTGOING,
                utcnow(),
                {"model": self.completion.model},
            )
        except PersistenceError as e:
            # the reply is in hand, send it anyway
            logger.error("Project %s: outgoing message not stored: %s", tenant.id, e)

        credential = self.credential_for(tenant)
        if not credential:
            logger.error(
                "Project %s: no WhatsApp token and no WHATSAPP_TOKEN fallback, reply dropped",
                tenant.id,
            )
            return RelayOutcome.ABORTED

        try:
            await self.delivery.send(event.routing_key, event.sender, reply, credential)
        except DeliveryError as e:
            logger.error("Project %s: reply to %s not delivered: %s", tenant.id, event.sender, e)
            return RelayOutcome.ABORTED

        logger.info("Project %s: replied to %s", tenant.id, event.sender)
        return RelayOutcome.DELIVERED
