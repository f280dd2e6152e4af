# qbank/observability/posthog_client.py

"""
PostHog event tracking.

Disabled unless POSTHOG_API_KEY is set. Tracking never raises into the
caller; failures are logged and dropped.
"""

import os
import logging
from typing import Optional, Dict, Any

from posthog import Posthog


logger = logging.getLogger(__name__)


class PostHogClient:

    def __init__(self):

        self._enabled = False
        self._client: Optional[Posthog] = None

        api_key = os.getenv("POSTHOG_API_KEY")
        host = os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        if not api_key:
            logger.warning(
                "PostHog disabled: POSTHOG_API_KEY not set"
            )
            return

        try:

            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )

            self._enabled = True

            logger.info(
                "PostHog client initialized",
                extra={"host": host}
            )

        except Exception as e:

            logger.error(
                "PostHog initialization failed",
                extra={"error": str(e)}
            )

            self._enabled = False


    @property
    def enabled(self) -> bool:
        return self._enabled


    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={
                    "event": event,
                    "error": str(e),
                }
            )


    def identify_user(
        self,
        distinct_id: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.identify(
                distinct_id=distinct_id,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog identify failed",
                extra={"error": str(e)}
            )


    # ==========================================================
    # DOMAIN EVENTS
    # ==========================================================

    def track_subject_created(self, distinct_id: str, subject_id: str, name: str):

        self._track(
            distinct_id,
            "subject_created",
            {"subject_id": subject_id, "subject_name": name},
        )


    def track_paper_ingested(
        self,
        distinct_id: str,
        subject_id: str,
        source: str,
        total_candidates: int,
        new_questions: int,
        recurrences: int,
        failed: int,
        latency: float,
    ):

        self._track(
            distinct_id,
            "paper_ingested",
            {
                "subject_id": subject_id,
                "source": source,
                "total_candidates": total_candidates,
                "new_questions": new_questions,
                "recurrences": recurrences,
                "failed": failed,
                "latency_seconds": latency,
            },
        )


    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )


posthog_client = PostHogClient()
