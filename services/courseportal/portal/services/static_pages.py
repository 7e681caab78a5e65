"""JSON-backed static pages (syllabus, Q&A).

The files are edited by hand outside the app, so a missing or broken file
must never take the page down: callers always get a usable mapping back.
"""

import copy
import json
import logging
from functools import lru_cache
from pathlib import Path

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_SYLLABUS = {"title": "Syllabus", "items": []}
DEFAULT_QAS = {"title": "Q&A", "sections": []}


def _data_dir() -> Path:
    return Path(getattr(settings, "PORTAL_STATIC_DATA_DIR", Path.cwd() / "data"))


@lru_cache(maxsize=32)
def _load_json_cached(path_str: str, mtime_ns: int):
    return json.loads(Path(path_str).read_text(encoding="utf-8"))


def load_page(filename: str, default: dict) -> dict:
    """Return the parsed JSON document, or a copy of `default` on any failure."""
    path = _data_dir() / filename
    try:
        mtime_ns = path.stat().st_mtime_ns
        data = _load_json_cached(str(path), mtime_ns)
    except (OSError, ValueError) as exc:
        logger.warning("static_page_load_failed path=%s error=%s", path, exc.__class__.__name__)
        return copy.deepcopy(default)

    if not isinstance(data, dict):
        logger.warning("static_page_not_a_mapping path=%s", path)
        return copy.deepcopy(default)

    page = copy.deepcopy(data)
    for key, value in default.items():
        page.setdefault(key, copy.deepcopy(value))
    return page


def load_syllabus() -> dict:
    return load_page("syllabus.json", DEFAULT_SYLLABUS)


def load_qas() -> dict:
    return load_page("qas.json", DEFAULT_QAS)
