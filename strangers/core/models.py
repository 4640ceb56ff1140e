"""
Wire models for the relay protocol.

Contract:
- every frame is a JSON envelope: {id, type, payload, senderSockId?, receiverSockId?}
- PAIR payload: {user: {name?, genderKey, filter: {genderKey}}}
- SEND payload: {message: {type: "TEXT", payload: {text}}}
- genderKey is a concrete category ("M" | "F"); filter.genderKey may also be the wildcard "A"
- heartbeat: the server sends {id, type: "PING", payload: {}} after a few seconds of silence;
  clients must answer with a text frame {type: "PONG"} before the pong timeout or they are
  disconnected (and so is their partner). WebSocket control-frame pongs do not count.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Category keys ---

CATEGORY_KEYS = ("M", "F")
WILDCARD = "A"


# --- Event types ---

PAIR = "PAIR"
PAIRED = "PAIRED"
SEND = "SEND"
RECEIVED = "RECEIVED"
PING = "PING"
PONG = "PONG"

TEXT = "TEXT"


# --- Profile ---

class UserFilter(BaseModel):
    """Desired peer: a concrete category or the wildcard."""
    genderKey: str

    @field_validator("genderKey")
    @classmethod
    def known_key(cls, v: str) -> str:
        if v != WILDCARD and v not in CATEGORY_KEYS:
            raise ValueError(f"filter genderKey must be one of {CATEGORY_KEYS + (WILDCARD,)}, got {v!r}")
        return v


class UserProfile(BaseModel):
    """Declared identity of one connection."""
    name: Optional[str] = None
    genderKey: str
    filter: UserFilter

    @field_validator("genderKey")
    @classmethod
    def concrete_key(cls, v: str) -> str:
        if v not in CATEGORY_KEYS:
            raise ValueError(f"genderKey must be one of {CATEGORY_KEYS}, got {v!r}")
        return v

    @property
    def wants_anyone(self) -> bool:
        return self.filter.genderKey == WILDCARD


# --- Envelope and payloads ---

class Envelope(BaseModel):
    """Inbound event envelope. Unknown extra fields are kept but ignored."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None  # ignored inbound
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    senderSockId: Optional[str] = None
    receiverSockId: Optional[str] = None


class PairPayload(BaseModel):
    user: UserProfile


class ChatMessage(BaseModel):
    """A relayed message; only TEXT is understood today."""
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class SendPayload(BaseModel):
    message: ChatMessage


class TextPayload(BaseModel):
    text: str
