from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class StartChat(BaseModel):
    type: Literal["startChat"]

class NextPartner(BaseModel):
    type: Literal["nextPartner"]

class StopChat(BaseModel):
    type: Literal["stopChat"]

class Offer(BaseModel):
    type: Literal["offer"]
    offer: Any
    to: str = Field(min_length=1)

class Answer(BaseModel):
    type: Literal["answer"]
    answer: Any
    to: str = Field(min_length=1)

class IceCandidate(BaseModel):
    type: Literal["ice-candidate"]
    candidate: Any
    to: str = Field(min_length=1)


InboundEvent = Annotated[
    Union[StartChat, NextPartner, StopChat, Offer, Answer, IceCandidate],
    Field(discriminator="type"),
]

inbound_event_adapter = TypeAdapter(InboundEvent)


def parse_event(raw: str):
    """Parse one client frame. Raises pydantic.ValidationError for bad JSON or unknown/malformed events."""
    return inbound_event_adapter.validate_json(raw)
