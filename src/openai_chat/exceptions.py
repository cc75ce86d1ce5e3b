"""Errors raised by openai-chat."""


class ChatError(Exception):
    """Base class for all errors raised by a chat session."""


class MissingCredentialError(ChatError):
    """Raised when no API key was supplied and none was found in the environment."""


class InputClassificationError(ChatError):
    """Raised when an image input is not a URL, an existing file, or a readable stream."""


class SchemaParseError(ChatError):
    """Raised when the structured-output schema is not a valid JSON Schema object."""


class TransportError(ChatError):
    """Raised when the HTTP request could not be completed (connection, TLS, timeout)."""


class ResponseShapeError(ChatError):
    """
    Raised when the API reply is not the expected chat completion.

    This covers non-2xx replies, bodies that are not JSON, and bodies that lack
    `choices[0].message.content`.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class OutputParseError(ChatError):
    """Raised when a schema was requested but the model's content does not parse."""

    def __init__(self, message: str, content: str):
        super().__init__(message)
        self.content = content
