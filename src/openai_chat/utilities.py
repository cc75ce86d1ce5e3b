"""Utility functions for building structured-output requests."""
from copy import deepcopy
import inspect
import json
from pydantic import BaseModel

from openai_chat.exceptions import SchemaParseError


def _remove_defaults_recursively(obj) -> None:  # noqa: ANN001
    """
    Remove default values recursively from a schema object.

    OpenAI's strict structured output rejects schemas containing default values anywhere, and
    pydantic models generate them at various nesting levels.
    """
    if isinstance(obj, dict):
        if 'default' in obj:
            del obj['default']

        for _, value in list(obj.items()):
            if isinstance(value, dict | list):
                _remove_defaults_recursively(value)

        # strict mode requires additionalProperties: false and every property listed as required
        if obj.get('type') == 'object' and 'properties' in obj:
            obj['additionalProperties'] = False
            obj['required'] = list(obj['properties'].keys())

    elif isinstance(obj, list):
        for item in obj:
            if isinstance(item, dict | list):
                _remove_defaults_recursively(item)


def is_pydantic_model(schema: object) -> bool:
    """Check if `schema` is a pydantic model class (not an instance)."""
    return inspect.isclass(schema) and issubclass(schema, BaseModel)


def pydantic_model_to_json_schema(response_format: type[BaseModel]) -> dict:
    """
    Convert a Pydantic model to the `json_schema` object of a `response_format` directive.

    Returns:
        A dict of the form `{'name': ..., 'strict': True, 'schema': {...}}`.
    """
    schema = deepcopy(response_format.model_json_schema())
    _remove_defaults_recursively(schema)
    return {
        'name': response_format.__name__,
        'strict': True,
        'schema': schema,
    }


def parse_json_schema(schema: str | dict | type[BaseModel]) -> dict:
    """
    Parse a structured-output schema into the `json_schema` object sent to the API.

    Args:
        schema:
            A JSON document (string) embedded verbatim, a dict embedded verbatim, or a pydantic
            model class which is converted to a strict JSON Schema.

    Raises:
        SchemaParseError: If the string is not valid JSON or does not describe a JSON object.
    """
    if is_pydantic_model(schema):
        return pydantic_model_to_json_schema(schema)
    if isinstance(schema, dict):
        return deepcopy(schema)
    if not isinstance(schema, str):
        raise SchemaParseError(
            f"Schema must be a JSON string, dict, or pydantic model, not {type(schema)}",
        )
    try:
        parsed = json.loads(schema)
    except json.JSONDecodeError as e:
        raise SchemaParseError(f"Schema is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise SchemaParseError(f"Schema must be a JSON object, not {type(parsed).__name__}")
    return parsed
