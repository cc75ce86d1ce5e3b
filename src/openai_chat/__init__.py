"""Public facing functions and classes for chat sessions."""
from pydantic import BaseModel
from openai_chat.chat import Chat
from openai_chat.config import API_KEY_ENV_VAR, DEFAULT_MODEL, resolve_api_key
from openai_chat.exceptions import (
    ChatError,
    MissingCredentialError,
    InputClassificationError,
    SchemaParseError,
    TransportError,
    ResponseShapeError,
    OutputParseError,
)
from openai_chat.images import (
    ImageSourceKind,
    ReadableSource,
    classify_obj,
    process_image,
)
from openai_chat.models_base import (
    Role,
    Message,
    TextPart,
    ImagePart,
    ImageUrl,
    system_message,
    user_message,
    assistant_message,
)
from openai_chat.telemetry import is_telemetry_enabled, get_tracer, get_meter


def create_chat(
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        schema: str | dict | type[BaseModel] | None = None,
        server_url: str | None = None,
        env_var: str = API_KEY_ENV_VAR,
    ) -> Chat:
    """
    Create a Chat, reading the API key from the environment if it is not passed explicitly.

    This is a convenience over calling `Chat` directly; a `.env` file in the working directory is
    loaded before the environment is read.

    Args:
        api_key:
            The API key. If None, the key is read from `env_var`.
        model:
            The model name to use (e.g. 'gpt-4o-mini').
        schema:
            Optional structured-output schema (JSON string, dict, or pydantic model class).
        server_url:
            Optional base URL for an OpenAI-compatible server.
        env_var:
            The environment variable holding the API key.

    Raises:
        MissingCredentialError: If no key is passed and the environment variable is not set.
    """
    return Chat(
        api_key=resolve_api_key(api_key, env_var=env_var),
        model=model,
        schema=schema,
        server_url=server_url,
    )


__all__ = [  # noqa: RUF022
    'create_chat',
    'Chat',
    'ChatError',
    'MissingCredentialError',
    'InputClassificationError',
    'SchemaParseError',
    'TransportError',
    'ResponseShapeError',
    'OutputParseError',
    'ImageSourceKind',
    'ReadableSource',
    'classify_obj',
    'process_image',
    'Role',
    'Message',
    'TextPart',
    'ImagePart',
    'ImageUrl',
    'system_message',
    'user_message',
    'assistant_message',
    'is_telemetry_enabled',
    'get_tracer',
    'get_meter',
]
