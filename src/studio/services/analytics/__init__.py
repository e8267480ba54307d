"""Analytics module for product event tracking."""

from src.studio.services.analytics.posthog import PostHogService

__all__ = ["PostHogService"]
