"""PostHog analytics service for event tracking."""

import logging

from posthog import Posthog

from src.studio.config import Settings

logger = logging.getLogger(__name__)


class PostHogService:
    """Service for tracking analytics events via PostHog."""

    def __init__(self, settings: Settings) -> None:
        """
        Initialize PostHog service.

        Tracking is disabled when no API key is configured.
        """
        self.client: Posthog | None = None
        if settings.posthog_api_key:
            self.client = Posthog(settings.posthog_api_key, host=settings.posthog_host)

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: Unique identifier for the user (access subject)
            event: Event name (e.g., "script_generated", "authentication_failed")
            properties: Optional event properties

        Example:
            >>> service = PostHogService(settings)
            >>> service.capture(
            ...     "access-sub-123",
            ...     "script_generated",
            ...     {"project_id": "abc", "cached": False}
            ... )
        """
        if self.client is None:
            return

        try:
            self.client.capture(distinct_id=distinct_id, event=event, properties=properties or {})
        except Exception as e:
            # Analytics must never fail the request being tracked
            logger.warning(f"Failed to capture analytics event {event}: {e}")

    def shutdown(self) -> None:
        """Flush queued events and stop the background consumer."""
        if self.client is not None:
            self.client.shutdown()
