from django.utils.deprecation import MiddlewareMixin


class NoCacheAPIMiddleware(MiddlewareMixin):
    """Middleware to disable browser caching on API responses.

    Approach listings, quota usage and progress stats change on every write.
    Server-side caches are invalidated on commit, but a browser-cached copy
    would still show a stale remaining capacity in the editor.

    Applies to all `/api/` endpoints.
    """

    def process_response(self, request, response):
        """Add Cache-Control headers to API responses."""
        if request.path_info.startswith("/api/"):
            response["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response["Pragma"] = "no-cache"
            response["Expires"] = "0"
        return response
