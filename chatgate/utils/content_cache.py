"""Content cache collaborator used to resolve image references."""

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Protocol, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_MIMETYPE = "application/octet-stream"


class ContentCache(Protocol):
    """Resolves a stored content reference to its bytes."""

    def read_as_base64_with_mime(
        self, reference: str, mimetype: Optional[str] = None
    ) -> Tuple[str, str]:
        ...

    def read_as_data_url(self, reference: str, mimetype: Optional[str] = None) -> str:
        ...


class FileContentCache:
    """
    File-backed content cache.

    References are file names relative to ``cache_dir``; absolute paths are
    used as-is.
    """

    def __init__(self, cache_dir: Union[str, Path] = "."):
        self.cache_dir = Path(cache_dir)

    def _resolve(self, reference: str) -> Path:
        path = Path(reference)
        if path.is_absolute():
            return path
        return self.cache_dir / path

    def read_bytes(self, reference: str) -> bytes:
        return self._resolve(reference).read_bytes()

    def read_as_base64_with_mime(
        self, reference: str, mimetype: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Read a cached file as base64.

        Args:
            reference: Cache reference (file name)
            mimetype: Known mimetype; guessed from the name when missing

        Returns:
            Tuple of (mimetype, base64 data)

        Raises:
            OSError: If the file cannot be read
        """
        data = base64.b64encode(self.read_bytes(reference)).decode("ascii")
        if not mimetype:
            mimetype = mimetypes.guess_type(reference)[0] or DEFAULT_MIMETYPE
        return mimetype, data

    def read_as_data_url(self, reference: str, mimetype: Optional[str] = None) -> str:
        mimetype, data = self.read_as_base64_with_mime(reference, mimetype)
        return f"data:{mimetype};base64,{data}"


def resolve_image_base64(
    cache: Optional[ContentCache], reference: str, mimetype: Optional[str] = None
) -> Tuple[str, str]:
    """
    Resolve an image part to (mimetype, base64), degrading to an empty payload.

    A missing cache or unreadable reference is logged and yields ``""`` data so
    the rest of the message still goes out.
    """
    if cache is None:
        logger.warning(f"No content cache configured, sending empty image for {reference}")
        return mimetype or "", ""
    try:
        return cache.read_as_base64_with_mime(reference, mimetype)
    except Exception as e:
        logger.warning(f"Failed to read image {reference} from cache: {e}")
        return mimetype or "", ""


def resolve_image_data_url(
    cache: Optional[ContentCache], reference: str, mimetype: Optional[str] = None
) -> str:
    """Resolve an image part to a data URL, degrading to ``""``."""
    if cache is None:
        logger.warning(f"No content cache configured, sending empty image for {reference}")
        return ""
    try:
        return cache.read_as_data_url(reference, mimetype)
    except Exception as e:
        logger.warning(f"Failed to read image {reference} from cache: {e}")
        return ""
