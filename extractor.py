"""
Comment extraction pipeline.

For each video reference, in order: resolve the video ID, fetch the video
title, page through the top-level comment threads, keep comments inside the
date range that match the keyword expression, drop duplicates and report the
growing result after every page.

Failures of a single reference (bad URL, missing video, comments disabled,
failed page) are logged and skipped so earlier results are never lost. Only
cancellation stops a run, by raising ExtractionAborted.
"""

# ============================================================================
# IMPORTS
# ============================================================================

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from config import CONFIG
from keyword_matcher import matches_keywords
from video_ids import extract_video_id
from youtube_api import CommentsDisabledError, CommentSource, CommentSourceError, RawComment

logger = logging.getLogger(__name__)


# ============================================================================
# DATA MODEL
# ============================================================================

@dataclass(frozen=True)
class CommentRecord:
    """One extracted top-level comment."""
    id: str
    author: str
    text: str
    source_ref: str
    source_title: str
    published_at: date
    like_count: int

    def to_dict(self):
        """Row shape used by the exporters."""
        return {
            "id": self.id,
            "author": self.author,
            "text": self.text,
            "videoUrl": self.source_ref,
            "videoTitle": self.source_title,
            "publishedAt": self.published_at.isoformat(),
            "likeCount": self.like_count,
        }


@dataclass
class ExtractionFilters:
    """
    What to extract.

    Both dates are inclusive; end_date covers the whole day. A missing bound
    leaves that side of the range open.
    """
    references: Sequence[str]
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    keywords: str = ""


Snapshot = Tuple[CommentRecord, ...]
ProgressCallback = Callable[[Snapshot], None]


# ============================================================================
# CANCELLATION
# ============================================================================

class ExtractionAborted(Exception):
    """The run was cancelled through its CancellationToken."""


class CancellationToken:
    """Cooperative cancellation flag shared by a caller and one run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ExtractionAborted("Extraction cancelled")


# ============================================================================
# FILTERS
# ============================================================================

def parse_published_at(timestamp):
    """
    Parse an API timestamp such as 2024-01-05T12:30:00Z into an aware datetime.

    Raises:
        ValueError: If timestamp is not an ISO 8601 string
    """
    if not isinstance(timestamp, str):
        raise ValueError(f"Timestamp must be a string, got {type(timestamp).__name__}")
    parsed =datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def within_date_range(published_at, start_date=None, end_date=None):
    """Inclusive range test; end_date extends to the last instant of that day (UTC)."""
    if start_date is not None:
        start = datetime.combine(start_date, dt_time.min, tzinfo=timezone.utc)
        if published_at < start:
            return False
    if end_date is not None:
        end = datetime.combine(end_date, dt_time.max, tzinfo=timezone.utc)
        if published_at > end:
            return False
    return True


def comment_passes_filters(comment: RawComment, filters: ExtractionFilters) -> bool:
    """Date test first, then the keyword expression."""
    published_at = parse_published_at(comment.published_at)
    if not within_date_range(published_at, filters.start_date, filters.end_date):
        return False
    return matches_keywords(comment.text, filters.keywords)


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class CommentExtractor:
    """
    Runs one extraction at a time against a CommentSource.

    Page size, page ceiling and the two pacing delays default to CONFIG.
    `sleep` is injectable so tests can run without real delays.
    """

    def __init__(self, source: CommentSource, page_size=None, max_pages=None,
                 page_delay=None, video_delay=None, sleep=time.sleep):
        self.source = source
        self.page_size = CONFIG['max_results_comments'] if page_size is None else page_size
        self.max_pages = CONFIG['max_pages_per_video'] if max_pages is None else max_pages
        self.page_delay = CONFIG['page_delay'] if page_delay is None else page_delay
        self.video_delay = CONFIG['video_delay'] if video_delay is None else video_delay
        self._sleep = sleep

        if not 1 <= self.page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")

    def _pause(self, seconds):
        if seconds > 0:
            self._sleep(seconds)

    def extract(self, filters: ExtractionFilters,
                on_progress: Optional[ProgressCallback] = None,
                cancel_token: Optional[CancellationToken] = None) -> Snapshot:
        """
        Extract comments for every reference in filters.

        Returns:
            tuple of CommentRecord: All kept comments in first-seen order. This is
            the same snapshot object passed to the last on_progress call.

        Raises:
            ExtractionAborted: If cancel_token is cancelled before the run completes
        """
        cancel_token = cancel_token or CancellationToken()
        accumulator: List[CommentRecord] = []
        seen_ids = set()
        snapshot: Snapshot = ()

        for index, reference in enumerate(filters.references):
            cancel_token.raise_if_cancelled()

            if index > 0:
                self._pause(self.video_delay)
                cancel_token.raise_if_cancelled()

            video_id = extract_video_id(reference)
            if not video_id:
                logger.warning("Skipping invalid YouTube URL or video ID: %r", reference)
                continue

            try:
                metadata = self.source.get_video_metadata(video_id)
            except CommentsDisabledError:
                logger.warning("Skipping %s: Comments disabled", video_id)
                continue
            except CommentSourceError as e:
                logger.warning("Skipping %s: failed to fetch video details: %s", video_id, e)
                continue
            except Exception:
                logger.exception("Skipping %s: unexpected error fetching video details", video_id)
                continue

            logger.info("Fetching comments from: %s", metadata.title[:50])

            page_token = None
            page_count = 0
            while True:
                cancel_token.raise_if_cancelled()

                try:
                    page = self.source.get_comments_page(video_id, self.page_size, page_token)
                except CommentsDisabledError:
                    logger.warning("Comments are disabled for video: %s", metadata.title)
                    break
                except CommentSourceError as e:
                    logger.warning("Error fetching comments for %s: %s", video_id, e)
                    break
                except Exception:
                    logger.exception("Unexpected error fetching comments for %s", video_id)
                    break

                page_count += 1
                added = self._collect(page.items, reference, metadata.title, filters,
                                      accumulator, seen_ids)
                logger.debug("Page %d of %s: %d new comments", page_count, video_id, added)

                snapshot = tuple(accumulator)
                if on_progress is not None:
                    on_progress(snapshot)

                page_token = page.next_page_token
                if not page_token or page_count >= self.max_pages:
                    break

                self._pause(self.page_delay)

            logger.info("Completed %s: %d total comments", metadata.title[:50], len(accumulator))

        return snapshot

    def _collect(self, items, reference, title, filters, accumulator, seen_ids):
        added = 0
        for comment in items:
            try:
                keep = comment_passes_filters(comment, filters)
            except ValueError:
                logger.warning("Skipping comment %s with unreadable timestamp %r",
                               comment.thread_id, comment.published_at)
                continue
            if not keep or comment.thread_id in seen_ids:
                continue

            seen_ids.add(comment.thread_id)
            accumulator.append(CommentRecord(
                id=comment.thread_id,
                author=comment.author,
                text=comment.text,
                source_ref=reference,
                source_title=title,
                published_at=parse_published_at(comment.published_at).date(),
                like_count=comment.like_count or 0,
            ))
            added += 1
        return added


def extract_comments(source: CommentSource, filters: ExtractionFilters,
                     on_progress: Optional[ProgressCallback] = None,
                     cancel_token: Optional[CancellationToken] = None,
                     **options) -> Snapshot:
    """Convenience wrapper: build a CommentExtractor with `options` and run it once."""
    return CommentExtractor(source, **options).extract(filters, on_progress, cancel_token)
