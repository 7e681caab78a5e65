"""Best-effort audit logging helpers for admin actions."""

from __future__ import annotations

import ipaddress
import logging
from typing import Any

logger = logging.getLogger(__name__)


def _client_ip(request) -> str:
    remote = (request.META.get("REMOTE_ADDR", "") or "").strip()
    if remote:
        try:
            ipaddress.ip_address(remote)
            return remote
        except ValueError:
            pass
    return ""


def log_admin_action(
    request,
    *,
    action: str,
    target_type: str = "",
    target_id: str = "",
    summary: str = "",
    metadata: dict[str, Any] | None = None,
) -> None:
    """Record an admin mutation without impacting request success path."""
    try:
        actor = getattr(request, "portal_user", None)
        logger.info(
            "admin_action action=%s actor=%s target=%s:%s ip=%s summary=%r metadata=%r",
            (action or "").strip() or "unknown",
            actor.email if actor is not None else "-",
            (target_type or "").strip(),
            (target_id or "").strip(),
            _client_ip(request) or "-",
            (summary or "").strip()[:255],
            metadata or {},
        )
    except Exception:
        logger.exception("admin_action_log_failed action=%s", action)
