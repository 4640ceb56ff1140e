"""
Outbound event builders and inbound envelope parsing.

Builders return plain dicts; the registry stamps the event id when sending.
"""
from typing import Any, Dict, Optional

from strangers.core.models import PAIRED, RECEIVED, TEXT, Envelope, UserProfile


def parse_envelope(text: str) -> Envelope:
    """Parse one inbound text frame. Raises pydantic.ValidationError on bad JSON or shape."""
    return Envelope.model_validate_json(text)


def paired_event(my_id: str, paired_id: str, paired_user: UserProfile) -> Dict[str, Any]:
    return {
        "type": PAIRED,
        "payload": {
            "mySockId": my_id,
            "pairedSockId": paired_id,
            "pairedUser": paired_user.model_dump(exclude_none=True),
        },
    }


def received_event(sender_id: Optional[str], receiver_id: str, text: str) -> Dict[str, Any]:
    return {
        "type": RECEIVED,
        "senderSockId": sender_id,
        "receiverSockId": receiver_id,
        "payload": {
            "message": {
                "type": TEXT,
                "payload": {"text": text},
            },
        },
    }
