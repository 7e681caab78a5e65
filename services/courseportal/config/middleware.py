from django.conf import settings


class SecurityHeadersMiddleware:
    """Attach security headers configured via settings.

    The default CSP allows YouTube iframes so lesson videos can embed.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        csp_policy = (getattr(settings, "CSP_POLICY", "") or "").strip()
        if csp_policy and "Content-Security-Policy" not in response:
            response["Content-Security-Policy"] = csp_policy
        permissions_policy = (getattr(settings, "PERMISSIONS_POLICY", "") or "").strip()
        if permissions_policy and "Permissions-Policy" not in response:
            response["Permissions-Policy"] = permissions_policy
        referrer_policy = (getattr(settings, "SECURE_REFERRER_POLICY", "") or "").strip()
        if referrer_policy and "Referrer-Policy" not in response:
            response["Referrer-Policy"] = referrer_policy
        return response
