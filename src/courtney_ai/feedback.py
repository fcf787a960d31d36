"""
Post-session feedback: a 1-5 rating and an optional comment.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from courtney_ai.errors import CourtneyError, ValidationError
from courtney_ai.transport.http import HttpClient

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class FeedbackRecord(BaseModel):
    rating: int
    comment: str = ""
    mode: Optional[str] = None
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="submittedAt",
    )

    model_config = {"populate_by_name": True}


class FeedbackCollector(Protocol):
    async def collect(self, record: FeedbackRecord) -> None: ...

    async def aclose(self) -> None: ...


class LoggingFeedbackCollector:
    async def collect(self, record: FeedbackRecord) -> None:
        logger.info("Feedback submitted: rating=%d comment=%r", record.rating, record.comment)

    async def aclose(self) -> None:
        pass


class HttpFeedbackCollector:
    """POST feedback records as JSON to an external endpoint."""

    def __init__(self, http: HttpClient, url: str):
        self._http = http
        self._url = url

    async def collect(self, record: FeedbackRecord) -> None:
        await self._http.post(self._url, record.model_dump(mode="json", by_alias=True))

    async def aclose(self) -> None:
        await self._http.close()


class FeedbackCapture:
    def __init__(self, collector: Optional[FeedbackCollector] = None):
        self._collector = collector or LoggingFeedbackCollector()
        self._mode: Optional[str] = None
        self.pending = False
        self.records: list[FeedbackRecord] = []

    def open(self, mode: Optional[str] = None) -> None:
        self._mode = mode
        self.pending = True

    async def submit(self, rating: Optional[int], comment: str = "") -> Optional[FeedbackRecord]:
        """Record a rating for the session that just ended.

        Ignored when no feedback is pending. An unset or zero rating is
        ignored and feedback stays pending. A collector failure is logged;
        the record is still kept and feedback closes.
        """
        if not self.pending:
            logger.debug("Feedback submit ignored: nothing pending")
            return None
        if not rating:
            logger.debug("Feedback submit ignored: no rating")
            return None
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError({"rating": f"Rating must be between {MIN_RATING} and {MAX_RATING}"})
        record = FeedbackRecord(rating=rating, comment=comment or "", mode=self._mode)
        try:
            await self._collector.collect(record)
        except CourtneyError as e:
            logger.error("Feedback collector failed: %s", e)
        self.records.append(record)
        self._close()
        return record

    def skip(self) -> None:
        logger.info("Feedback skipped")
        self._close()

    async def aclose(self) -> None:
        await self._collector.aclose()

    def _close(self) -> None:
        self.pending = False
        self._mode = None
