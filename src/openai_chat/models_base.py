"""Message and content-part types for a chat transcript."""
from enum import Enum
from typing import Annotated, Literal
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Role(Enum):
    """Enum for the author of a message."""

    SYSTEM = 'system'
    USER = 'user'
    ASSISTANT = 'assistant'


class TextPart(BaseModel):
    """A text fragment of a multimodal message. Extra fields are kept and sent as-is."""

    model_config = ConfigDict(frozen=True, extra='allow')

    type: Literal['text'] = 'text'
    text: str


class ImageUrl(BaseModel):
    """
    The `image_url` payload of an image part.

    `url` is either a remote URL or a `data:` URI. Any additional fields (e.g. `detail`) are kept
    and sent to the API as-is.
    """

    model_config = ConfigDict(frozen=True, extra='allow')

    url: str


class ImagePart(BaseModel):
    """An image fragment of a multimodal message. Extra fields are kept and sent as-is."""

    model_config = ConfigDict(frozen=True, extra='allow')

    type: Literal['image_url'] = 'image_url'
    image_url: ImageUrl

    @classmethod
    def from_url(cls, url: str, **extra: object) -> 'ImagePart':
        """Create an ImagePart from a URL or data URI."""
        return cls(image_url=ImageUrl(url=url, **extra))


ContentPart = Annotated[TextPart | ImagePart, Field(discriminator='type')]

_content_part_adapter = TypeAdapter(ContentPart)


def to_content_part(part: TextPart | ImagePart | dict) -> TextPart | ImagePart:
    """Validate a canonical content part (`{'type': 'text', ...}` / `{'type': 'image_url', ...}`)."""
    if isinstance(part, TextPart | ImagePart):
        return part
    return _content_part_adapter.validate_python(part)


class Message(BaseModel):
    """A single immutable entry of the transcript."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | tuple[ContentPart, ...]

    def to_dict(self) -> dict:
        """Returns the message in the format expected by the chat completions API."""
        return self.model_dump(mode='json')


def system_message(content: str) -> Message:
    """Returns a system message."""
    return Message(role=Role.SYSTEM, content=content)


def user_message(content: str | list[TextPart | ImagePart] | tuple) -> Message:
    """
    Returns a user message.

    Args:
        content:
            Either a string for text-only messages, or a sequence of TextPart/ImagePart objects
            for mixed content.
    """
    if content is None:
        raise TypeError("Content cannot be None")
    if isinstance(content, str):
        return Message(role=Role.USER, content=content)
    return Message(role=Role.USER, content=tuple(content))


def assistant_message(content: str) -> Message:
    """Returns an assistant message."""
    return Message(role=Role.ASSISTANT, content=content)
