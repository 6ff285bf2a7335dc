"""Empty 204 answers to OPTIONS requests.

CORS headers themselves come from ``corsheaders.middleware.CorsMiddleware``,
which must sit directly below this middleware.
"""

from django.http import HttpResponse


class EmptyPreflightMiddleware:
    """Replace any OPTIONS response with an empty 204, keeping its CORS headers."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if request.method != "OPTIONS":
            return response
        preflight = HttpResponse(status=204)
        for header, value in response.items():
            if header.lower().startswith("access-control-") or header.lower() == "vary":
                preflight[header] = value
        return preflight
