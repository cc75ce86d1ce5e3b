"""Conversation session for the OpenAI chat completions API."""
import json
import logging
import os
from time import perf_counter
import openai
from pydantic import BaseModel, ValidationError

from openai_chat.config import DEFAULT_MODEL, DEFAULT_SERVER_URL
from openai_chat.exceptions import (
    MissingCredentialError,
    OutputParseError,
    ResponseShapeError,
    TransportError,
)
from openai_chat.images import ImageInput, process_image
from openai_chat.models_base import (
    ImagePart,
    Message,
    Role,
    TextPart,
    to_content_part,
)
from openai_chat.telemetry import (
    get_meter,
    get_tracer,
    mark_span_error,
    record_request_metrics,
    safe_span,
)
from openai_chat.utilities import is_pydantic_model, parse_json_schema

logger = logging.getLogger(__name__)


def _expand_content_item(item: object) -> TextPart | ImagePart:
    """
    Convert one element of list content into a content part.

    Accepts canonical parts (TextPart/ImagePart objects, or dicts with a `type` key which are kept
    verbatim including extra fields such as `detail`) and the shorthand dicts `{'text': ...}` and
    `{'image': <url, path, or stream>}`.
    """
    if isinstance(item, TextPart | ImagePart):
        return item
    if not isinstance(item, dict):
        raise TypeError(f"Content list items must be dicts or content parts, not {type(item)}")
    if 'type' in item:
        return to_content_part(item)
    if set(item) == {'text'}:
        return TextPart(text=item['text'])
    if set(item) == {'image'}:
        return ImagePart.from_url(process_image(item['image']))
    raise ValueError(
        "Content list items must have a `type` key, or exactly one of `text` or `image`; "
        f"received keys: {sorted(item)}",
    )


def _parse_completion(body: str) -> tuple[str, dict]:
    """Return `choices[0].message.content` and the `usage` object from a response body."""
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise ResponseShapeError(f"Response body is not valid JSON: {e}", body=body) from e
    try:
        content = parsed['choices'][0]['message']['content']
    except (KeyError, IndexError, TypeError) as e:
        raise ResponseShapeError(
            f"Response body has no `choices[0].message.content`: {body[:500]}",
            body=body,
        ) from e
    if not isinstance(content, str):
        raise ResponseShapeError(
            f"Expected `choices[0].message.content` to be a string, got {type(content).__name__}",
            body=body,
        )
    usage = parsed.get('usage')
    return content, usage if isinstance(usage, dict) else {}


class Chat:
    """
    An in-memory conversation with a chat completions model.

    Messages are appended with `system`, `user`, and `assistant`; `send` posts the whole transcript
    to the API, records the reply as an assistant message, and returns it. If `schema` is set, the
    model is asked for structured output and `send` returns the parsed value.

    A Chat is not safe for concurrent mutation from multiple threads without external
    synchronization.

    Example:
        ```python
        chat = Chat(api_key=os.environ['OPENAI_API_KEY'])
        chat.system("You are a helpful assistant.")
        chat.user("What's in this image?", image="photo.jpg")
        reply = chat.send()
        ```
    """

    def __init__(
            self,
            api_key: str | None,
            model: str = DEFAULT_MODEL,
            schema: str | dict | type[BaseModel] | None = None,
            server_url: str | None = DEFAULT_SERVER_URL,
            ) -> None:
        """
        Initialize the session.

        Args:
            api_key:
                The bearer token sent with each request. Use `create_chat` to read it from the
                environment.
            model:
                The model name to use for the API call (e.g. 'gpt-4o').
            schema:
                Optional structured-output constraint: a JSON document string of the form
                `{"name": ..., "schema": {...}}`, the equivalent dict, or a pydantic model class.
            server_url:
                The base URL for the API call. Defaults to https://api.openai.com/v1.
        """
        if not api_key:
            raise MissingCredentialError("An API key is required to create a Chat.")
        self.model = model
        self.schema = schema
        self.server_url = server_url
        self.messages: list[Message] = []
        # retries are disabled; a request either completes or fails once
        self.client = openai.OpenAI(api_key=api_key, base_url=server_url, max_retries=0)

        self.tracer = get_tracer()
        self.meter = get_meter()

    def _append(self, role: Role, content: str | tuple) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def system(self, content: str) -> Message:
        """Append a system message."""
        if content is None:
            raise TypeError("Content cannot be None")
        return self._append(Role.SYSTEM, content)

    def user(
            self,
            content: str | list | tuple,
            image: ImageInput | None = None,
            images: list[ImageInput] | None = None,
            ) -> Message:
        """
        Append a user message, optionally with images.

        Args:
            content:
                Either the text of the message, or a list of content items. List items can be
                canonical parts (e.g. `{'type': 'image_url', 'image_url': {'url': ..., 'detail':
                'high'}}`) which are kept as-is, or the shorthand `{'text': ...}` /
                `{'image': ...}`.
            image:
                A single image: an http(s) URL, a path to an existing file, or a readable stream.
            images:
                Several images, in the order they should appear after the text.

        Raises:
            ValueError: If both `image` and `images` are given, or images are combined with list
                content.
            InputClassificationError: If an image input cannot be classified.
            TypeError: If `images` is a single string or path instead of a list.
        """
        if content is None:
            raise TypeError("Content cannot be None")
        if image is not None and images is not None:
            raise ValueError("Pass either `image` or `images`, not both.")
        if isinstance(images, str | os.PathLike):
            raise TypeError("`images` must be a list; use `image=` for a single image.")
        has_images = image is not None or bool(images)

        if isinstance(content, list | tuple):
            if has_images:
                raise ValueError("`image`/`images` cannot be combined with list content.")
            parts = tuple(_expand_content_item(item) for item in content)
            return self._append(Role.USER, parts)
        if not has_images:
            return self._append(Role.USER, content)

        sources = [image] if image is not None else list(images)
        parts = (
            TextPart(text=content),
            *(ImagePart.from_url(process_image(source)) for source in sources),
        )
        return self._append(Role.USER, parts)

    def assistant(self, content: str) -> Message:
        """Append an assistant message without calling the API (e.g. few-shot examples)."""
        if content is None:
            raise TypeError("Content cannot be None")
        return self._append(Role.ASSISTANT, content)

    def response_format(self) -> dict:
        """
        Returns the `response_format` directive for the current schema.

        Raises:
            SchemaParseError: If the schema is not a valid JSON object.
        """
        if self.schema is None:
            return {'type': 'text'}
        return {'type': 'json_schema', 'json_schema': parse_json_schema(self.schema)}

    def request_body(self) -> dict:
        """Returns the JSON body sent to the chat completions endpoint."""
        return {
            'model': self.model,
            'response_format': self.response_format(),
            'messages': [message.to_dict() for message in self.messages],
        }

    def _post(self, body: dict) -> str:
        """Send the request and return the raw response body."""
        try:
            raw_response = self.client.chat.completions.with_raw_response.create(**body)
        except openai.APIConnectionError as e:
            raise TransportError(f"Request to the chat completions API failed: {e}") from e
        except openai.APIStatusError as e:
            raise ResponseShapeError(
                f"Chat completions API returned HTTP {e.status_code}: {e.message}",
                status_code=e.status_code,
                body=e.response.text,
            ) from e
        return raw_response.text

    def send(self) -> str | object:
        """
        Send the transcript to the API and append the reply as an assistant message.

        Returns:
            The reply text if no schema is set; otherwise the parsed JSON value (or an instance of
            the pydantic model when the schema is a model class).

        Raises:
            SchemaParseError: If the schema is invalid (nothing is sent).
            TransportError: If the request could not be completed.
            ResponseShapeError: If the API replied with an error or an unexpected body.
            OutputParseError: If a schema is set but the reply does not parse. The raw reply has
                already been appended to `messages`.
        """
        body = self.request_body()
        with safe_span(
            self.tracer,
            'llm.openai.chat',
            attributes={
                'llm.model': self.model,
                'llm.provider': 'openai',
                'llm.messages.count': len(self.messages),
                'llm.structured_output': self.schema is not None,
            },
        ) as span:
            logger.debug("Sending %d messages to model `%s`", len(self.messages), self.model)
            start = perf_counter()
            try:
                raw_body = self._post(body)
                content, usage = _parse_completion(raw_body)
            except Exception as e:
                mark_span_error(span, e)
                raise
            duration = perf_counter() - start
            logger.debug("Received %d characters in %.2fs", len(content), duration)

            if span:
                span.set_attribute('llm.request.duration', duration)
                if 'prompt_tokens' in usage:
                    span.set_attribute('llm.tokens.input', usage['prompt_tokens'])
                if 'completion_tokens' in usage:
                    span.set_attribute('llm.tokens.output', usage['completion_tokens'])
            record_request_metrics(
                self.meter,
                duration_seconds=duration,
                input_tokens=usage.get('prompt_tokens'),
                output_tokens=usage.get('completion_tokens'),
                labels={'llm_model': self.model, 'llm_provider': 'openai'},
            )

        self._append(Role.ASSISTANT, content)
        if self.schema is None:
            return content
        return self._parse_output(content)

    def _parse_output(self, content: str) -> object:
        if is_pydantic_model(self.schema):
            try:
                return self.schema.model_validate_json(content)
            except ValidationError as e:
                raise OutputParseError(
                    f"Model output does not match `{self.schema.__name__}`: {e}",
                    content=content,
                ) from e
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise OutputParseError(f"Model output is not valid JSON: {e}", content=content) from e

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} messages={self.messages!r} model={self.model!r} "
            f"schema={self.schema!r}>"
        )
