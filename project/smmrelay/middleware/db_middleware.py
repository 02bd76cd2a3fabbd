# smmrelay/middleware/db_middleware.py

from starlette.types import ASGIApp, Receive, Scope, Send
from smmrelay.utils.database import AsyncSessionLocal

class DBSessionMiddleware:
    """Кладёт сессию БД в request.state.db на время HTTP-запроса."""

    def __init__(self, app: ASGIApp, session_factory=AsyncSessionLocal):
        self.app = app
        self.session_factory = session_factory

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["db"] = self.session_factory()
        try:
            await self.app(scope, receive, send)
        finally:
            # закрываем сессию только после завершения запроса
            await state["db"].close()
