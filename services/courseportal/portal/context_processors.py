def portal_user(request):
    """Expose the signed-in portal identity to every template as `user`."""
    return {"user": getattr(request, "portal_user", None)}
