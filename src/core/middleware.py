"""Core middleware."""
from django.conf import settings
from django.utils.cache import patch_cache_control


class NoStoreAPIMiddleware:
    """Mark API responses no-store so targets and rankings are never read stale.

    Responses whose view already chose a ``Cache-Control`` policy are left
    alone: immutable snapshot exports may be cached by the browser.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.prefixes = tuple(getattr(settings, "NO_STORE_PATH_PREFIXES", ("/api/",)))

    def __call__(self, request):
        response = self.get_response(request)
        if not request.path.startswith(self.prefixes) or response.has_header("Cache-Control"):
            return response

        patch_cache_control(response, private=True, no_cache=True, no_store=True, max_age=0)
        response["Pragma"] = "no-cache"
        return response
