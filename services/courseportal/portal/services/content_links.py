"""URL helpers for lesson videos."""

import re
from urllib.parse import parse_qs, urlparse

_VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")
# Checked in this order; the first marker present in the path wins.
_PATH_MARKERS = ("embed", "shorts", "live")


def _looks_like_video_id(value: str) -> bool:
    return bool(_VIDEO_ID_RE.fullmatch(value or ""))


def _is_youtube_host(host: str) -> bool:
    return host == "youtube.com" or host.endswith(".youtube.com")


def _id_from_youtube_path(path: str) -> str:
    parts = [p for p in (path or "").split("/") if p]
    for marker in _PATH_MARKERS:
        if marker not in parts:
            continue
        idx = parts.index(marker)
        if idx + 1 < len(parts):
            return parts[idx + 1]
    return ""


def extract_youtube_id(url) -> str:
    """Return the 11-character YouTube video id for `url`, or "".

    Accepts watch/share/embed/shorts/live URLs and bare ids. Never raises.
    """
    if not isinstance(url, str):
        return ""
    raw = url.strip()
    if not raw:
        return ""

    try:
        parsed = urlparse(raw)
        host = (parsed.hostname or "").lower()
    except ValueError:
        parsed = None
        host = ""
    if parsed is None or not parsed.scheme or not host:
        # Not a URL at all; maybe the admin pasted the id itself.
        return raw if _looks_like_video_id(raw) else ""

    if host.startswith("www."):
        host = host[len("www."):]

    video_id = ""
    if host == "youtu.be":
        video_id = next((p for p in parsed.path.split("/") if p), "")
    elif _is_youtube_host(host):
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if not video_id:
            video_id = _id_from_youtube_path(parsed.path)

    if _looks_like_video_id(video_id):
        return video_id
    return ""


def youtube_embed_url(video_id: str) -> str:
    if not _looks_like_video_id(video_id):
        return ""
    return f"https://www.youtube-nocookie.com/embed/{video_id}"
