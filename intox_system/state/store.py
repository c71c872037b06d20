from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .blob import BlobStore
from .utils import ATTRIBUTE_FIELDS, as_timestamp, clamp_attribute, normalize_character_key, now_ms

logger = logging.getLogger("intox_system.state")


@dataclass(slots=True)
class AttributeRecord:
    name: str
    intoxication: int = 0
    arousal: int = 0
    updated_at: int = 0

    @classmethod
    def from_payload(cls, key: str, raw: Any) -> "AttributeRecord":
        if not isinstance(raw, dict):
            raw = {}
        name = str(raw.get("name") or "").strip() or key
        return cls(
            name=name,
            intoxication=clamp_attribute(raw.get("intoxication")),
            arousal=clamp_attribute(raw.get("arousal")),
            updated_at=as_timestamp(raw.get("updatedAt")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "intoxication": self.intoxication,
            "arousal": self.arousal,
            "updatedAt": self.updated_at,
        }


@dataclass(slots=True)
class ChatBucket:
    characters: dict[str, AttributeRecord] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, raw: Any) -> "ChatBucket":
        bucket = cls()
        characters = raw.get("characters") if isinstance(raw, dict) else None
        if not isinstance(characters, dict):
            return bucket
        for raw_key, raw_record in characters.items():
            record = AttributeRecord.from_payload(str(raw_key), raw_record)
            key = normalize_character_key(raw_key)
            existing = bucket.characters.get(key)
            # Keys differing only in case collapse to one record; the newest write wins.
            if existing is None or record.updated_at > existing.updated_at:
                bucket.characters[key] = record
        return bucket

    def to_payload(self) -> dict[str, Any]:
        return {"characters": {key: record.to_payload() for key, record in self.characters.items()}}


class StateStore:
    """In-memory per-chat attribute state with whole-snapshot load/save through a blob store."""

    def __init__(self, blobs: BlobStore, storage_key: str = "intox_system_v2_state") -> None:
        self.blobs = blobs
        self.storage_key = storage_key
        self.chats: dict[str, ChatBucket] = {}
        self.last_known_chat_id: str | None = None

    def bucket(self, chat_id: str) -> ChatBucket:
        bucket = self.chats.get(chat_id)
        if bucket is None:
            bucket = ChatBucket()
            self.chats[chat_id] = bucket
        return bucket

    def apply_payload(self, payload: Any) -> None:
        self.chats = {}
        self.last_known_chat_id = None
        if not isinstance(payload, dict):
            return
        chats = payload.get("chats")
        if isinstance(chats, dict):
            for chat_id, raw_bucket in chats.items():
                self.chats[str(chat_id)] = ChatBucket.from_payload(raw_bucket)
        ui = payload.get("ui")
        if isinstance(ui, dict) and ui.get("lastKnownChatId") is not None:
            self.last_known_chat_id = str(ui["lastKnownChatId"])

    def to_payload(self) -> dict[str, Any]:
        ui: dict[str, Any] = {}
        if self.last_known_chat_id is not None:
            ui["lastKnownChatId"] = self.last_known_chat_id
        return {
            "chats": {chat_id: bucket.to_payload() for chat_id, bucket in self.chats.items()},
            "ui": ui,
        }

    async def load(self) -> None:
        try:
            raw = await self.blobs.get(self.storage_key)
        except Exception as exc:
            logger.warning("State load failed for key=%s (%s); starting empty", self.storage_key, exc)
            self.apply_payload(None)
            return
        if not raw:
            self.apply_payload(None)
            return
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.warning("Stored state for key=%s is not valid JSON (%s); starting empty", self.storage_key, exc)
            payload = None
        self.apply_payload(payload)

    async def save(self) -> bool:
        try:
            encoded = json.dumps(self.to_payload(), ensure_ascii=False, separators=(",", ":"))
            await self.blobs.set(self.storage_key, encoded)
        except Exception as exc:
            logger.warning("State save failed for key=%s (%s); keeping in-memory state", self.storage_key, exc)
            return False
        return True

    def set_attribute(self, chat_id: str, key: str, field_name: str, value: object, *, name: str | None = None) -> AttributeRecord:
        if field_name not in ATTRIBUTE_FIELDS:
            raise ValueError(f"Unknown attribute: {field_name}")
        bucket = self.bucket(chat_id)
        record = bucket.characters.get(key)
        if record is None:
            record = AttributeRecord(name=(name or key).strip() or key, updated_at=now_ms())
            bucket.characters[key] = record
        elif name and name.strip():
            record.name = name.strip()
        setattr(record, field_name, clamp_attribute(value))
        record.updated_at = now_ms()
        return record

    def reset_character(self, chat_id: str, key: str) -> bool:
        record = self.bucket(chat_id).characters.get(key)
        if record is None:
            return False
        record.intoxication = 0
        record.arousal = 0
        record.updated_at = now_ms()
        return True

    def reset_all(self, chat_id: str) -> int:
        bucket = self.bucket(chat_id)
        stamp = now_ms()
        for record in bucket.characters.values():
            record.intoxication = 0
            record.arousal = 0
            record.updated_at = stamp
        return len(bucket.characters)

    def forget_character(self, chat_id: str, key: str) -> bool:
        return self.bucket(chat_id).characters.pop(key, None) is not None
