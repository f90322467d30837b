"""
CORS middleware.

WHY: The calculator frontend runs on another origin and calls this service
with an Authorization header, so browsers send a pre-flight OPTIONS request
first. Pre-flights are answered here, before rate limiting and routing, and
never touch the database.
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response


DEFAULT_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
ALLOW_METHODS = "GET, POST, OPTIONS"


class CORSPreflightMiddleware(BaseHTTPMiddleware):
    """
    Answer pre-flights and add CORS headers to every response.

    - OPTIONS (any path): 200 immediately with permissive headers
    - Everything else: passed through, then Access-Control-Allow-Origin and
      Access-Control-Allow-Headers are added, error responses included

    Register it last so it wraps every other middleware.
    """

    def __init__(self, app, allow_headers: str = DEFAULT_ALLOW_HEADERS):
        super().__init__(app)
        self.cors_headers = {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": allow_headers,
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Add CORS headers to response.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Pre-flight answer, or the downstream response with CORS headers
        """
        if request.method == "OPTIONS":
            return JSONResponse(
                status_code=200,
                content={"message": "ok"},
                headers={
                    **self.cors_headers,
                    "Access-Control-Allow-Methods": ALLOW_METHODS,
                    "Access-Control-Max-Age": "86400",
                },
            )

        response = await call_next(request)
        response.headers.update(self.cors_headers)
        return response
