"""
Video reference resolution.

Turns whatever the user pasted (watch page URL, youtu.be short link, embed URL
or a bare video ID) into the canonical 11-character YouTube video ID.
"""

import re
from urllib.parse import urlparse, parse_qs

VIDEO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{11}$')

YOUTUBE_HOSTS = ('www.youtube.com', 'youtube.com', 'm.youtube.com', 'music.youtube.com')
SHORT_LINK_HOSTS = ('youtu.be', 'www.youtu.be')


def is_valid_video_id(value):
    """Return True if value is a canonical YouTube video ID."""
    return isinstance(value, str) and bool(VIDEO_ID_PATTERN.match(value))


def _parse_url(reference):
    # Accept "youtube.com/watch?v=..." pasted without a scheme
    if '://' not in reference and '/' in reference:
        reference = 'https://' + reference
    parsed = urlparse(reference)
    if parsed.scheme not in ('http', 'https'):
        return None
    return parsed


def _from_watch_url(parsed):
    if parsed.netloc.lower() not in YOUTUBE_HOSTS or parsed.path.rstrip('/') != '/watch':
        return None
    values = parse_qs(parsed.query).get('v')
    return values[0] if values else None


def _from_short_link(parsed):
    if parsed.netloc.lower() not in SHORT_LINK_HOSTS:
        return None
    segments = [s for s in parsed.path.split('/') if s]
    return segments[0] if segments else None


def _from_embed_url(parsed):
    if parsed.netloc.lower() not in YOUTUBE_HOSTS:
        return None
    segments = [s for s in parsed.path.split('/') if s]
    if len(segments) >= 2 and segments[0] == 'embed':
        return segments[1]
    return None


# Checked in this order; the first pattern that recognises the URL decides.
URL_PATTERNS = (_from_watch_url, _from_short_link, _from_embed_url)


def extract_video_id(reference):
    """
    Resolve a raw video reference to its canonical video ID.

    Supported formats:
    - https://www.youtube.com/watch?v=VIDEO_ID (extra query parameters ignored)
    - https://youtu.be/VIDEO_ID
    - https://www.youtube.com/embed/VIDEO_ID
    - VIDEO_ID

    Parameters:
        reference (str): The reference as typed by the user

    Returns:
        str or None: The 11-character video ID, or None if the reference is invalid
    """
    if not isinstance(reference, str):
        return None

    candidate = reference.strip()
    if not candidate:
        return None

    parsed = _parse_url(candidate)
    if parsed is not None:
        for pattern in URL_PATTERNS:
            video_id = pattern(parsed)
            if video_id is not None:
                return video_id if is_valid_video_id(video_id) else None

    # No URL pattern matched: treat the whole input as a bare ID
    if is_valid_video_id(candidate):
        return candidate
    return None
