"""Wire frames — the tagged union of everything a client may send.

Learn: Every frame on the socket is a JSON object `{"type": ..., "data": ...}`.
Inbound frames are validated here, at the gateway boundary, with a pydantic
discriminated union on `type`, so the signaling and session code only ever
sees typed, well-formed payloads. Field aliases keep the camelCase names
the browser client already sends (`userToCall`, `signalData`, `from`).
"""

from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

from lumina.events.types import ANSWER_CALL, CALL_USER, END_CALL, JOIN, PING
from lumina.realtime.errors import FrameValidationError


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ─── Payloads ─────────────────────────────────────────────


class JoinPayload(_Payload):
    # Older clients send `userId`.
    user_identity: str = Field(
        min_length=1,
        validation_alias=AliasChoices("userIdentity", "userId", "user_identity"),
    )


class CallUserPayload(_Payload):
    user_to_call: str = Field(alias="userToCall", min_length=1)
    signal_data: Any = Field(alias="signalData")
    from_: str = Field(alias="from", min_length=1)
    name: str = ""


class AnswerCallPayload(_Payload):
    signal: Any
    to: str = Field(min_length=1)


class EndCallPayload(_Payload):
    to: str = Field(min_length=1)


# ─── Frames ───────────────────────────────────────────────


class JoinFrame(BaseModel):
    type: Literal["join"]
    data: JoinPayload


class CallUserFrame(BaseModel):
    type: Literal["callUser"]
    data: CallUserPayload


class AnswerCallFrame(BaseModel):
    type: Literal["answerCall"]
    data: AnswerCallPayload


class EndCallFrame(BaseModel):
    type: Literal["endCall"]
    data: EndCallPayload


class PingFrame(BaseModel):
    type: Literal["ping"]
    data: Any = None


InboundFrame = Annotated[
    Union[JoinFrame, CallUserFrame, AnswerCallFrame, EndCallFrame, PingFrame],
    Field(discriminator="type"),
]

INBOUND_FRAME_TYPES = frozenset({JOIN, CALL_USER, ANSWER_CALL, END_CALL, PING})

_inbound_adapter = TypeAdapter(InboundFrame)


def parse_inbound(frame_type: Any, payload: Any) -> InboundFrame:
    """Validate one inbound frame. Raises FrameValidationError."""
    try:
        return _inbound_adapter.validate_python({"type": frame_type, "data": payload})
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise FrameValidationError(
            frame_type if isinstance(frame_type, str) else None, detail
        ) from e


def envelope(event_type: str, payload: Any) -> dict:
    """Outbound frame body as written to the socket."""
    return {"type": event_type, "data": payload}
