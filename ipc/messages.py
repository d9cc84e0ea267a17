from __future__ import annotations

"""Typed dataclass messages broadcast on the activation channel.

Every message kind is a frozen dataclass carrying its wire *topic* as a class
attribute.  :func:`encode` wraps a message in a small JSON envelope
(``{"topic": ..., "payload": {...}}``) and :func:`decode` turns the bytes back
into the matching dataclass, so callers never touch raw key/value maps.
"""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Type

__all__ = [
    "UNKNOWN_PID",
    "SourceContext",
    "Message",
    "SetSourceContext",
    "TogglePluginHostWindow",
    "MessageDecodeError",
    "TOPICS",
    "encode",
    "decode",
]

#: Sentinel used on the wire when the source application's pid is unknown.
UNKNOWN_PID = -1


class MessageDecodeError(ValueError):
    """Raised when a received envelope cannot be mapped onto a known message."""


@dataclass(frozen=True, slots=True)
class SourceContext:
    """Snapshot of the application that was active when the hotkey fired."""

    app_name: str = "Unknown"
    bundle_id: str = ""
    process_id: int = UNKNOWN_PID

    def to_fields(self) -> Dict[str, Any]:
        return {
            "sourceAppName": self.app_name,
            "sourceAppBundleId": self.bundle_id,
            "sourceAppProcessId": self.process_id,
        }

    @classmethod
    def from_fields(cls, fields: Dict[str, Any]) -> "SourceContext":
        name = fields.get("sourceAppName", "Unknown")
        bundle_id = fields.get("sourceAppBundleId", "")
        pid = fields.get("sourceAppProcessId", UNKNOWN_PID)
        if not isinstance(name, str) or not isinstance(bundle_id, str):
            raise MessageDecodeError("source application name and bundle id must be strings")
        # bool is an int subclass – reject it explicitly.
        if isinstance(pid, bool) or not isinstance(pid, int):
            raise MessageDecodeError(f"sourceAppProcessId must be an integer, got {pid!r}")
        return cls(app_name=name, bundle_id=bundle_id, process_id=pid)


@dataclass(frozen=True, slots=True)
class Message:
    """Base-class for all activation-channel messages."""

    TOPIC: ClassVar[str] = ""

    def to_payload(self) -> Dict[str, Any]:  # pragma: no cover – overridden
        raise NotImplementedError

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Message":  # pragma: no cover – overridden
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class SetSourceContext(Message):
    """Tell a freshly launched helper which application it was invoked from."""

    TOPIC: ClassVar[str] = "SetSourceContext"

    source: SourceContext = field(default_factory=SourceContext)

    def to_payload(self) -> Dict[str, Any]:
        return self.source.to_fields()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SetSourceContext":
        return cls(source=SourceContext.from_fields(payload))


@dataclass(frozen=True, slots=True)
class TogglePluginHostWindow(Message):
    """Ask a running helper to show (``should_hide=False``) or hide its window."""

    TOPIC: ClassVar[str] = "TogglePluginHostWindow"

    source: SourceContext = field(default_factory=SourceContext)
    should_hide: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload = self.source.to_fields()
        payload["shouldHide"] = self.should_hide
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TogglePluginHostWindow":
        should_hide = payload.get("shouldHide")
        if not isinstance(should_hide, bool):
            raise MessageDecodeError(f"shouldHide must be a boolean, got {should_hide!r}")
        return cls(source=SourceContext.from_fields(payload), should_hide=should_hide)


#: Topic name → message class.  The two kinds are the complete vocabulary.
TOPICS: Dict[str, Type[Message]] = {
    SetSourceContext.TOPIC: SetSourceContext,
    TogglePluginHostWindow.TOPIC: TogglePluginHostWindow,
}


def encode(message: Message) -> bytes:
    """Serialise *message* into the UTF-8 JSON envelope sent on the wire."""
    if type(message).TOPIC not in TOPICS:
        raise TypeError(f"Unsupported message type: {type(message).__name__}")
    envelope = {"topic": message.TOPIC, "payload": message.to_payload()}
    return json.dumps(envelope, separators=(",", ":")).encode("utf-8")


def decode(data: bytes) -> Message:
    """Parse an envelope produced by :func:`encode`.

    Raises :class:`MessageDecodeError` for invalid JSON, unknown topics or
    payload fields of the wrong type.
    """
    try:
        envelope = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MessageDecodeError(f"Malformed envelope: {exc}") from exc

    if not isinstance(envelope, dict):
        raise MessageDecodeError("Envelope must be a JSON object")

    topic = envelope.get("topic")
    payload = envelope.get("payload")
    message_cls = TOPICS.get(topic) if isinstance(topic, str) else None
    if message_cls is None:
        raise MessageDecodeError(f"Unknown topic: {topic!r}")
    if not isinstance(payload, dict):
        raise MessageDecodeError("Envelope payload must be a JSON object")
    return message_cls.from_payload(payload)
