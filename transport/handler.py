import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from ledger.groups import ensure_member
from ledger.users import get_or_create_user
from session.context import MessageContext

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, something went wrong while processing your message. Please try again."

_PHONE_SUFFIX = re.compile(r"@(c\.us|lid|s\.whatsapp\.net)$")


def extract_phone(raw_id: str) -> str:
    return _PHONE_SUFFIX.sub("", raw_id)


def typing_delay_ms(text: str) -> int:
    return min(3000, max(500, len(text) * 10))


def trigger_pattern(agent_name: str):
    return re.compile(rf"^{re.escape(agent_name)}[,:]?\s*", re.IGNORECASE)


def strip_trigger(text: str, agent_name: str) -> Optional[str]:
    """
    Group messages must be addressed to the agent by name.

    Returns the text without the trigger word, or None when the message is
    not addressed to the agent (or nothing is left after the trigger).
    """
    text = text.strip()
    pattern = trigger_pattern(agent_name)
    if not pattern.match(text):
        return None
    remainder = pattern.sub("", text, count=1).strip()
    return remainder or None


@dataclass(frozen=True)
class InboundMessage:
    chat_id: str
    sender_id: str
    text: str
    sender_name: Optional[str] = None
    is_group: bool = False
    group_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload) -> "InboundMessage":
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")

        chat_id = str(payload.get("chat_id") or "").strip()
        if not chat_id:
            raise ValueError("chat_id is required")

        text = payload.get("text")
        if not isinstance(text, str):
            raise ValueError("text must be a string")

        is_group = bool(payload.get("is_group")) or chat_id.endswith("@g.us")
        # private chats: the chat id is the sender
        sender_id = str(payload.get("sender_id") or ("" if is_group else chat_id)).strip()
        if not sender_id:
            raise ValueError("sender_id is required for group messages")

        return cls(
            chat_id=chat_id,
            sender_id=sender_id,
            text=text,
            sender_name=payload.get("sender_name") or None,
            is_group=is_group,
            group_name=payload.get("group_name") or None,
        )


class Channel(Protocol):
    async def send_typing(self) -> None:
        ...

    async def send_reply(self, text: str) -> None:
        ...


class CollectingChannel:
    """
    Channel for request/response transports: remembers what would have
    been sent instead of sending it.
    """

    def __init__(self):
        self.typing = False
        self.replies = []

    async def send_typing(self):
        self.typing = True

    async def send_reply(self, text):
        self.replies.append(text)

    @property
    def reply(self):
        return self.replies[-1] if self.replies else None


class MessageHandler:
    def __init__(self, orchestrator, agent_name="Caixa", simulate_typing=False, sleep=asyncio.sleep):
        self.orchestrator = orchestrator
        self.agent_name = agent_name
        self.simulate_typing = simulate_typing
        self._sleep = sleep

    async def handle(self, event: InboundMessage, channel) -> Optional[str]:
        """
        Process one inbound chat message. Returns the reply sent, or None
        when the message was ignored.
        """
        try:
            return await self._handle(event, channel)
        except Exception:
            logger.exception("Error processing message from %s", event.chat_id)
            await channel.send_reply(ERROR_REPLY)
            return ERROR_REPLY

    async def _handle(self, event, channel):
        text = event.text.strip()
        group_id = None

        if event.is_group:
            text = strip_trigger(text, self.agent_name)
            if text is None:
                return None
            group_id = event.chat_id
            phone = extract_phone(event.sender_id)
            logger.info("Group message received group=%s phone=%s", group_id, phone)
        else:
            if not text:
                return None
            phone = extract_phone(event.sender_id)
            logger.info("Private message received phone=%s", phone)

        user = await asyncio.to_thread(get_or_create_user, phone, event.sender_name)
        if group_id:
            await asyncio.to_thread(ensure_member, group_id, user["id"], event.group_name)

        ctx = MessageContext(user_id=user["id"], group_id=group_id, is_group=event.is_group)

        await channel.send_typing()
        reply = await self.orchestrator.process_message(text, ctx)
        if not reply:
            return None

        if self.simulate_typing:
            await self._sleep(typing_delay_ms(reply) / 1000)

        logger.info("Sending reply to %s: %s", event.chat_id, reply[:100])
        await channel.send_reply(reply)
        return reply
