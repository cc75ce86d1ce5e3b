"""Default settings and credential resolution."""
import os
from dotenv import load_dotenv

from openai_chat.exceptions import MissingCredentialError

DEFAULT_MODEL = 'gpt-4o'
API_KEY_ENV_VAR = 'OPENAI_API_KEY'
# server_url=None lets the openai SDK use https://api.openai.com/v1
DEFAULT_SERVER_URL = None


def resolve_api_key(api_key: str | None = None, env_var: str = API_KEY_ENV_VAR) -> str:
    """
    Return the explicit API key, or read it from the environment (and a `.env` file).

    Args:
        api_key:
            The API key to use. Takes precedence over the environment.
        env_var:
            The environment variable holding the key when `api_key` is not provided.

    Raises:
        MissingCredentialError: If neither source provides a non-empty key.
    """
    if api_key:
        return api_key
    load_dotenv()
    api_key = os.getenv(env_var)
    if not api_key:
        raise MissingCredentialError(
            f"No API key provided and the `{env_var}` environment variable is not set.",
        )
    return api_key
