from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models import CustomerData, VerificationOutcome

logger = logging.getLogger("kyc.providers")


class ProviderReply(BaseModel):
    """Transport facts shared by every provider response model.

    ``status_code`` is only set for non-success replies. ``transport_error``
    is set when no reply arrived at all.
    """

    status_code: Optional[int] = None
    transport_error: Optional[str] = None
    malformed_body: bool = False


ReplyT = TypeVar("ReplyT", bound=ProviderReply)


class Provider(Protocol):
    name: str

    def send(self, customer: CustomerData) -> Any:
        ...

    def normalize(self, response: Any) -> VerificationOutcome:
        ...

    def check_status(self, reference_id: str) -> VerificationOutcome:
        ...


def is_success(code: int) -> bool:
    # 0 means the transport had no status to report
    return code == 0 or 200 <= code < 300


def decode_body(raw: bytes) -> Optional[Dict[str, Any]]:
    """Parse a JSON object body; ``None`` when empty or not an object."""
    if not raw:
        return None
    try:
        obj = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return obj if isinstance(obj, dict) else None


def parse_reply(model: Type[ReplyT], code: int, raw: bytes) -> ReplyT:
    """Build a provider response from a raw reply without raising."""
    reply: Optional[ReplyT] = None
    data = decode_body(raw)
    if data is not None:
        try:
            reply = model.model_validate(data)
        except ValidationError as exc:
            logger.debug("%s body did not validate: %s", model.__name__, exc)
    if reply is None:
        reply = model(malformed_body=True)
    if not is_success(code):
        reply.status_code = code
    return reply
