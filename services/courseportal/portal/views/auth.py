"""Sign-in/sign-out endpoint callables."""

import logging

from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_http_methods, require_POST

from ..guards import login_required
from ..middleware import SessionUser, store_session_user
from ..models import User, normalize_email

logger = logging.getLogger(__name__)

_LOGIN_ERROR = "Invalid email or password."


def healthz(request):
    # Used by the reverse proxy/ops checks to confirm the app process is alive.
    return HttpResponse("ok", content_type="text/plain")


def _render_login(request, *, error: str = "", email: str = "", status: int = 200):
    return render(
        request,
        "login.html",
        {"page_title": "Login", "error": error, "email": email},
        status=status,
    )


@require_http_methods(["GET", "POST"])
def login_view(request):
    if request.method == "GET":
        if request.portal_user is not None:
            return redirect("/")
        return _render_login(request)

    email = normalize_email(request.POST.get("email"))
    password = request.POST.get("password") or ""

    user = User.objects.filter(email=email).first() if email else None
    if user is None or not user.check_password(password):
        logger.info("login_failed email=%s", email or "-")
        return _render_login(request, error=_LOGIN_ERROR, email=email, status=401)

    try:
        session_user = SessionUser.from_user(user)
    except ValueError:
        logger.warning("login_rejected_unknown_role user_id=%s", user.id)
        return _render_login(request, error=_LOGIN_ERROR, email=email, status=401)

    # New session key on sign-in so a pre-login cookie cannot be reused.
    request.session.cycle_key()
    store_session_user(request.session, session_user)
    logger.info("login_ok user_id=%s role=%s", session_user.id, session_user.role.value)
    return redirect("/")


@require_POST
@login_required
def logout_view(request):
    request.session.flush()
    return redirect("/login")


__all__ = [
    "healthz",
    "login_view",
    "logout_view",
]
