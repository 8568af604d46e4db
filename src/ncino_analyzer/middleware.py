"""トークン認証ミドルウェア。"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """token クエリパラメータまたは X-API-Key ヘッダーを検証するミドルウェア。

    NCINO_ANALYZER_URL_TOKEN が設定されている場合のみ有効。
    /health はヘルスチェック用のため検証をスキップする。
    """

    SKIP_PATHS = {"/health"}
    HEADER_NAME = "X-API-Key"

    def __init__(self, app: ASGIApp, url_token: str = "") -> None:
        super().__init__(app)
        self.url_token = url_token

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.url_token:
            return await call_next(request)

        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        token = request.query_params.get("token") or request.headers.get(self.HEADER_NAME, "")
        if token != self.url_token:
            return JSONResponse(
                {"error": "Unauthorized", "message": "Invalid or missing token"},
                status_code=401,
            )

        return await call_next(request)
