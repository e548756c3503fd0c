"""MCPエンドポイントのトークン認証ミドルウェア。"""

import hmac

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp


def _extract_token(request: Request) -> str:
    """Authorizationヘッダー（Bearer）またはtokenクエリからトークンを取り出す。"""
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.query_params.get("token", "")


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """APPFLEET_URL_TOKEN が設定されている場合にトークン一致を要求する。

    /health など skip_paths に含まれるパスは検証しない。
    """

    def __init__(self, app: ASGIApp, url_token: str = "", skip_paths: frozenset[str] = frozenset({"/health"})) -> None:
        super().__init__(app)
        self.url_token = url_token
        self.skip_paths = skip_paths

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.url_token or request.url.path in self.skip_paths:
            return await call_next(request)

        if not hmac.compare_digest(_extract_token(request).encode(), self.url_token.encode()):
            return JSONResponse(
                {"error": "Unauthorized", "message": "Invalid or missing token"},
                status_code=401,
            )
        return await call_next(request)
