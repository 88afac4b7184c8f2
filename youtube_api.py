"""
Remote comment source backed by the YouTube Data API v3.

The extractor only needs two read operations: the metadata of a video (for its
title) and one page of top-level comment threads. CommentSource describes that
contract; YouTubeCommentSource implements it with googleapiclient, adding
retries with exponential backoff, quota bookkeeping and a small per-instance
cache of video metadata.
"""

# ============================================================================
# IMPORTS
# ============================================================================

import json
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional, Tuple

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import CONFIG
from video_ids import is_valid_video_id

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class CommentSourceError(Exception):
    """A remote read failed."""


class VideoNotFoundError(CommentSourceError):
    """The video does not exist or is private."""


class CommentsDisabledError(CommentSourceError):
    """The uploader has turned comments off for the video."""


class RateLimitedError(CommentSourceError):
    """The API kept rejecting requests as too frequent."""


class QuotaExceededError(CommentSourceError):
    """The daily quota of the API key is used up."""


# ============================================================================
# DATA SHAPES
# ============================================================================

class VideoMetadata(NamedTuple):
    video_id: str
    title: str
    channel_title: str = ""


class RawComment(NamedTuple):
    """One top-level comment thread as returned by the API."""
    thread_id: str
    author: str
    text: str
    published_at: str
    like_count: int


class CommentPage(NamedTuple):
    items: List[RawComment]
    next_page_token: Optional[str] = None


class CommentSource(ABC):
    """The two remote reads the extractor depends on."""

    @abstractmethod
    def get_video_metadata(self, video_id: str) -> VideoMetadata:
        """Return metadata for a video or raise CommentSourceError."""

    @abstractmethod
    def get_comments_page(self, video_id: str, page_size: int = 100,
                          page_token: Optional[str] = None) -> CommentPage:
        """Return one page of comment threads or raise CommentSourceError."""


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

RETRYABLE_STATUSES = (429, 500, 503)

QUOTA_COSTS = {
    'videos.list': 1,
    'commentThreads.list': 1,
}


def parse_http_error_reason(http_error):
    """
    Extract the reason from an HttpError by parsing its content.

    Returns:
        str or None: The error reason (e.g., 'commentsDisabled', 'quotaExceeded') or None if not found
    """
    try:
        error_content = json.loads(http_error.content)
        errors = error_content.get('error', {}).get('errors', [{}])
        if errors:
            return errors[0].get('reason')
        return None
    except (json.JSONDecodeError, AttributeError, IndexError, KeyError, TypeError, ValueError):
        return None


def translate_http_error(http_error):
    """Map an HttpError onto the CommentSourceError hierarchy."""
    reason = parse_http_error_reason(http_error)
    status = getattr(http_error.resp, 'status', None)

    if reason == 'commentsDisabled':
        return CommentsDisabledError("Comments are disabled for this video")
    if reason in ('quotaExceeded', 'dailyLimitExceeded'):
        return QuotaExceededError("API quota exceeded")
    if reason in ('rateLimitExceeded', 'userRateLimitExceeded') or status == 429:
        return RateLimitedError("Rate limited by the YouTube API")
    if reason == 'videoNotFound' or status == 404:
        return VideoNotFoundError("Video not found")
    return CommentSourceError(f"YouTube API request failed (status {status}, reason {reason})")


# ============================================================================
# YOUTUBE DATA API SOURCE
# ============================================================================

class YouTubeCommentSource(CommentSource):
    """CommentSource implementation talking to the YouTube Data API v3."""

    def __init__(self, api_key=None, youtube=None, retry_attempts=None,
                 cache_ttl=None, sleep=time.sleep, clock=time.monotonic):
        if youtube is None:
            if not api_key:
                raise ValueError("An API key is required to build the YouTube client")
            youtube = build("youtube", CONFIG['api_version'], developerKey=api_key)
        self.youtube = youtube
        self.retry_attempts = CONFIG['retry_attempts'] if retry_attempts is None else retry_attempts
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        self.cache_ttl = CONFIG['metadata_cache_ttl'] if cache_ttl is None else cache_ttl
        self.quota_used = 0
        self._sleep = sleep
        self._clock = clock
        self._metadata_cache: Dict[str, Tuple[float, VideoMetadata]] = {}

    def track_quota(self, operation_type):
        self.quota_used += QUOTA_COSTS.get(operation_type, 0)
        return self.quota_used

    def api_call_with_retry(self, api_func, operation_type=None):
        """
        Execute an API call with exponential backoff retry logic for transient errors.

        Rate limiting (429) and server errors (500, 503) are retried with
        (2 ** attempt) + jitter seconds between attempts. Everything else, and
        the final failed attempt, is raised as a CommentSourceError.
        """
        for attempt in range(self.retry_attempts):
            try:
                result = api_func()
            except HttpError as e:
                if e.resp.status in RETRYABLE_STATUSES and attempt < self.retry_attempts - 1:
                    wait_time = (2 ** attempt) + random.uniform(0, 1)
                    logger.warning(
                        "Rate limited or service unavailable. Retrying in %.1fs... (attempt %d/%d)",
                        wait_time, attempt + 1, self.retry_attempts,
                    )
                    self._sleep(wait_time)
                    continue
                raise translate_http_error(e) from e

            if operation_type:
                self.track_quota(operation_type)
            return result

    def _cached_metadata(self, video_id):
        entry = self._metadata_cache.get(video_id)
        if entry is None:
            return None
        expires_at, metadata = entry
        if self._clock() >= expires_at:
            del self._metadata_cache[video_id]
            return None
        return metadata

    def get_video_metadata(self, video_id):
        if not is_valid_video_id(video_id):
            raise VideoNotFoundError(f"Invalid video ID format: {video_id!r}")

        cached = self._cached_metadata(video_id)
        if cached is not None:
            logger.debug("Metadata cache hit for %s", video_id)
            return cached

        response = self.api_call_with_retry(
            lambda: self.youtube.videos().list(
                part="snippet",
                id=video_id
            ).execute(),
            operation_type='videos.list'
        )

        items = response.get('items') or []
        if not items:
            raise VideoNotFoundError(f"Video not found: {video_id}")

        snippet = items[0].get('snippet', {})
        metadata = VideoMetadata(
            video_id=video_id,
            title=snippet.get('title', ''),
            channel_title=snippet.get('channelTitle', ''),
        )
        if self.cache_ttl > 0:
            self._metadata_cache[video_id] = (self._clock() + self.cache_ttl, metadata)
        return metadata

    def get_comments_page(self, video_id, page_size=100, page_token=None):
        if not 1 <= page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")

        params = {
            'part': "snippet",
            'videoId': video_id,
            'maxResults': page_size,
            'order': "time",
            'textFormat': "plainText",
        }
        if page_token:
            params['pageToken'] = page_token

        response = self.api_call_with_retry(
            lambda: self.youtube.commentThreads().list(**params).execute(),
            operation_type='commentThreads.list'
        )

        items = []
        for thread in response.get('items', []):
            # Structure: thread['snippet']['topLevelComment']['snippet']
            top_level_comment = thread['snippet']['topLevelComment']['snippet']
            items.append(RawComment(
                thread_id=thread['id'],
                author=top_level_comment.get('authorDisplayName', ''),
                text=top_level_comment.get('textDisplay', ''),
                published_at=top_level_comment['publishedAt'],
                like_count=top_level_comment.get('likeCount') or 0,
            ))

        return CommentPage(items=items, next_page_token=response.get('nextPageToken'))
