"""Classification and encoding of image inputs for multimodal user messages."""
import base64
from enum import Enum
import mimetypes
import os
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

from openai_chat.exceptions import InputClassificationError


@runtime_checkable
class ReadableSource(Protocol):
    """
    A stream an image can be read from (e.g. an open file or `io.BytesIO`).

    The stream is read from its current position to the end, then moved back to that position.
    An optional `name` attribute is used to guess the MIME type.
    """

    def read(self, size: int = -1) -> bytes | str: ...

    def seek(self, offset: int, whence: int = 0) -> int: ...

    def tell(self) -> int: ...


ImageInput = str | os.PathLike | ReadableSource


class ImageSourceKind(Enum):
    """Enum for the kinds of image input."""

    URL = 'url'
    FILE_PATH = 'file_path'
    FILE_LIKE = 'file_like'


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def classify_obj(obj: object) -> ImageSourceKind:
    """
    Determine whether `obj` is an http(s) URL, an existing file path, or a readable stream.

    Raises:
        InputClassificationError: If `obj` is none of these.
    """
    if isinstance(obj, str | os.PathLike):
        if isinstance(obj, str) and _is_http_url(obj):
            return ImageSourceKind.URL
        if Path(obj).is_file():
            return ImageSourceKind.FILE_PATH
        raise InputClassificationError(
            "String provided is neither a valid URL (must start with http:// or https://) nor an "
            f"existing file path on disk. Received value: {obj!r}",
        )
    if isinstance(obj, ReadableSource):
        return ImageSourceKind.FILE_LIKE
    raise InputClassificationError(
        "Object provided is neither a string nor file-like (missing read/seek/tell). "
        f"Received value: {obj!r}",
    )


def guess_media_type(name: str | os.PathLike | None) -> str:
    """Guess the MIME type from a file name; returns an empty string if unknown."""
    if not name:
        return ''
    media_type, _ = mimetypes.guess_type(os.fspath(name))
    return media_type or ''


def to_data_uri(data: bytes, media_type: str) -> str:
    """Encode bytes as a base64 `data:` URI."""
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{media_type};base64,{encoded}"


def _read_source(source: ReadableSource) -> bytes:
    position = source.tell()
    try:
        data = source.read()
    finally:
        source.seek(position)
    if isinstance(data, str):
        data = data.encode('utf-8')
    return data


def process_image(obj: ImageInput) -> str:
    """
    Convert an image input into the URL sent in an `image_url` content part.

    URLs are passed through unchanged (they are not fetched). File paths and streams are read and
    returned as `data:<mime>;base64,<payload>` URIs. Streams are not closed and their position is
    restored after reading.

    Args:
        obj: An http(s) URL, a path to an existing file, or a ReadableSource.

    Raises:
        InputClassificationError: If `obj` cannot be classified.
    """
    kind = classify_obj(obj)
    if kind == ImageSourceKind.URL:
        return obj
    if kind == ImageSourceKind.FILE_PATH:
        with open(obj, 'rb') as f:
            data = f.read()
        return to_data_uri(data, guess_media_type(obj))
    name = getattr(obj, 'name', None)
    if not isinstance(name, str | os.PathLike):
        # e.g. a file opened from a descriptor exposes an int
        name = None
    return to_data_uri(_read_source(obj), guess_media_type(name))
