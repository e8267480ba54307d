"""Media storage for generated audio and image assets."""

import logging
import threading
from abc import ABC, abstractmethod

from supabase import Client

from src.studio.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class BaseMediaStorage(ABC):
    """Write-only object store keyed by path-like strings."""

    @abstractmethod
    def put(self, key: str, content: bytes, content_type: str | None = None) -> str:
        """
        Store bytes under a key.

        Args:
            key: Object key (e.g., "images/<project_id>/<uuid>.png")
            content: Object bytes
            content_type: MIME type recorded with the object

        Returns:
            The key the object was stored under
        """
        pass


class SupabaseMediaStorage(BaseMediaStorage):
    """Objects stored in a Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def put(self, key: str, content: bytes, content_type: str | None = None) -> str:
        """
        Upload an object to the bucket.

        Example:
            >>> storage = SupabaseMediaStorage(client, "media")
            >>> storage.put(f"audio/{project_id}/{uuid4()}.mp3", audio_bytes, "audio/mpeg")
        """
        file_options = {}
        if content_type:
            file_options["content-type"] = content_type

        try:
            self.client.storage.from_(self.bucket).upload(
                path=key, file=content, file_options=file_options
            )
        except Exception as e:
            logger.error(
                f"Failed to upload {key} to bucket {self.bucket}: {e}",
                extra={"error_type": "media_upload_failed", "key": key},
            )
            raise PersistenceError(f"Failed to upload media object {key}") from e

        return key


class InMemoryMediaStorage(BaseMediaStorage):
    """Process-local object store for development and tests."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, content: bytes, content_type: str | None = None) -> str:
        with self._lock:
            self.objects[key] = (bytes(content), content_type)
        return key
