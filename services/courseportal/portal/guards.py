"""View guards for signed-in and admin-only routes.

Both run before the view body. Anonymous browsers are sent to the login form
rather than shown a 401; signed-in students hitting admin routes get a plain
403 so the admin pages do not look like they are missing.
"""

from functools import wraps

from django.http import HttpResponse
from django.shortcuts import redirect

LOGIN_URL = "/login"


def login_required(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if getattr(request, "portal_user", None) is None:
            return redirect(LOGIN_URL)
        return view_func(request, *args, **kwargs)

    return _wrapped


def admin_required(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        user = getattr(request, "portal_user", None)
        if user is None:
            return redirect(LOGIN_URL)
        if not user.role.can_administer():
            return HttpResponse("Forbidden", status=403)
        return view_func(request, *args, **kwargs)

    return _wrapped
