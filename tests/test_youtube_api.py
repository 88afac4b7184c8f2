"""
Tests for the YouTube Data API comment source.
"""

import json
from unittest.mock import MagicMock, Mock

import pytest
from googleapiclient.errors import HttpError

from youtube_api import (
    CommentPage,
    CommentsDisabledError,
    CommentSourceError,
    QuotaExceededError,
    RateLimitedError,
    RawComment,
    VideoMetadata,
    VideoNotFoundError,
    YouTubeCommentSource,
    parse_http_error_reason,
    translate_http_error,
)

VIDEO_ID = "dQw4w9WgXcQ"


def make_http_error(status, reason=None):
    content = {'error': {'errors': [{'reason': reason}] if reason else []}}
    resp = Mock(status=status, reason="error")
    return HttpError(resp, json.dumps(content).encode('utf-8'))


def thread(thread_id, text="hello", published_at="2024-01-01T00:00:00Z", like_count=3):
    return {
        'id': thread_id,
        'snippet': {
            'totalReplyCount': 0,
            'topLevelComment': {
                'id': thread_id,
                'snippet': {
                    'authorDisplayName': 'Ann',
                    'textDisplay': text,
                    'publishedAt': published_at,
                    'likeCount': like_count,
                },
            },
        },
    }


@pytest.fixture
def youtube():
    return MagicMock()


@pytest.fixture
def source(youtube):
    return YouTubeCommentSource(youtube=youtube, retry_attempts=3, sleep=lambda s: None)


class TestErrorTranslation:

    @pytest.mark.parametrize("status, reason, expected", [
        (403, 'commentsDisabled', CommentsDisabledError),
        (403, 'quotaExceeded', QuotaExceededError),
        (403, 'rateLimitExceeded', RateLimitedError),
        (429, None, RateLimitedError),
        (404, 'videoNotFound', VideoNotFoundError),
        (404, None, VideoNotFoundError),
        (400, 'badRequest', CommentSourceError),
    ])
    def test_translate(self, status, reason, expected):
        assert type(translate_http_error(make_http_error(status, reason))) is expected

    def test_parse_reason(self):
        assert parse_http_error_reason(make_http_error(403, 'commentsDisabled')) == 'commentsDisabled'
        assert parse_http_error_reason(make_http_error(500)) is None

    def test_unparseable_content(self):
        error = HttpError(Mock(status=500, reason="error"), b"<html>oops</html>")
        assert parse_http_error_reason(error) is None


class TestVideoMetadata:

    def test_returns_title(self, source, youtube):
        youtube.videos().list().execute.return_value = {
            'items': [{'snippet': {'title': 'My Video', 'channelTitle': 'Chan'}}]
        }

        assert source.get_video_metadata(VIDEO_ID) == VideoMetadata(VIDEO_ID, 'My Video', 'Chan')
        youtube.videos().list.assert_called_with(part="snippet", id=VIDEO_ID)
        assert source.quota_used == 1

    def test_empty_items_is_not_found(self, source, youtube):
        youtube.videos().list().execute.return_value = {'items': []}
        with pytest.raises(VideoNotFoundError):
            source.get_video_metadata(VIDEO_ID)

    def test_invalid_id_never_hits_api(self, source, youtube):
        youtube.reset_mock()
        with pytest.raises(VideoNotFoundError):
            source.get_video_metadata("bad id")
        youtube.videos.assert_not_called()

    def test_metadata_is_cached(self, youtube):
        now = [0.0]
        source = YouTubeCommentSource(youtube=youtube, cache_ttl=60, clock=lambda: now[0])
        execute = youtube.videos().list().execute
        execute.return_value = {'items': [{'snippet': {'title': 'Cached'}}]}
        execute.reset_mock()

        source.get_video_metadata(VIDEO_ID)
        source.get_video_metadata(VIDEO_ID)
        assert execute.call_count == 1

        now[0] = 61.0
        source.get_video_metadata(VIDEO_ID)
        assert execute.call_count == 2

    def test_cache_disabled(self, youtube):
        source = YouTubeCommentSource(youtube=youtube, cache_ttl=0)
        execute = youtube.videos().list().execute
        execute.return_value = {'items': [{'snippet': {'title': 'T'}}]}
        execute.reset_mock()

        source.get_video_metadata(VIDEO_ID)
        source.get_video_metadata(VIDEO_ID)
        assert execute.call_count == 2

    def test_requires_api_key_without_client(self):
        with pytest.raises(ValueError):
            YouTubeCommentSource()

    @pytest.mark.parametrize("attempts", [0, -1])
    def test_rejects_non_positive_retry_attempts(self, youtube, attempts):
        with pytest.raises(ValueError):
            YouTubeCommentSource(youtube=youtube, retry_attempts=attempts)


class TestCommentsPage:

    def test_parses_threads(self, source, youtube):
        youtube.commentThreads().list().execute.return_value = {
            'items': [thread('t1', text='first'), thread('t2', like_count=None)],
            'nextPageToken': 'NEXT',
        }

        page = source.get_comments_page(VIDEO_ID, 50, 'TOKEN')

        assert page == CommentPage(
            items=[
                RawComment('t1', 'Ann', 'first', '2024-01-01T00:00:00Z', 3),
                RawComment('t2', 'Ann', 'hello', '2024-01-01T00:00:00Z', 0),
            ],
            next_page_token='NEXT',
        )
        youtube.commentThreads().list.assert_called_with(
            part="snippet",
            videoId=VIDEO_ID,
            maxResults=50,
            order="time",
            textFormat="plainText",
            pageToken='TOKEN',
        )

    def test_last_page_has_no_token(self, source, youtube):
        youtube.commentThreads().list().execute.return_value = {'items': []}
        assert source.get_comments_page(VIDEO_ID) == CommentPage(items=[], next_page_token=None)

    def test_page_size_bounds(self, source):
        with pytest.raises(ValueError):
            source.get_comments_page(VIDEO_ID, page_size=0)
        with pytest.raises(ValueError):
            source.get_comments_page(VIDEO_ID, page_size=101)

    def test_comments_disabled(self, source, youtube):
        youtube.commentThreads().list().execute.side_effect = make_http_error(403, 'commentsDisabled')
        with pytest.raises(CommentsDisabledError):
            source.get_comments_page(VIDEO_ID)


class TestRetry:

    def test_retries_transient_errors(self, youtube):
        delays = []
        source = YouTubeCommentSource(youtube=youtube, retry_attempts=3, sleep=delays.append)
        execute = youtube.commentThreads().list().execute
        execute.side_effect = [make_http_error(503), make_http_error(429), {'items': []}]

        assert source.get_comments_page(VIDEO_ID).items == []
        assert len(delays) == 2
        assert 1 <= delays[0] < 2
        assert 2 <= delays[1] < 3
        assert source.quota_used == 1

    def test_gives_up_after_max_attempts(self, youtube):
        source = YouTubeCommentSource(youtube=youtube, retry_attempts=2, sleep=lambda s: None)
        youtube.commentThreads().list().execute.side_effect = make_http_error(429)

        with pytest.raises(RateLimitedError):
            source.get_comments_page(VIDEO_ID)
        assert source.quota_used == 0

    def test_non_retryable_raised_immediately(self, youtube):
        delays = []
        source = YouTubeCommentSource(youtube=youtube, sleep=delays.append)
        youtube.videos().list().execute.side_effect = make_http_error(403, 'quotaExceeded')

        with pytest.raises(QuotaExceededError):
            source.get_video_metadata(VIDEO_ID)
        assert delays == []
