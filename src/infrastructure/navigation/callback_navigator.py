from collections.abc import Awaitable, Callable

import structlog

from src.application.interfaces.navigator import Navigator

logger = structlog.get_logger(__name__)

LoginRedirect = Callable[[str], Awaitable[None]]


class CallbackNavigator(Navigator):
    """
    Hands login redirects to the hosting shell.

    Without a callback the notice is only recorded, which is enough for
    headless use where nobody can sign in interactively.
    """

    def __init__(self, on_login_required: LoginRedirect | None = None) -> None:
        self._on_login_required = on_login_required
        self.notices: list[str] = []

    async def redirect_to_login(self, notice: str) -> None:
        self.notices.append(notice)
        logger.info("login_redirect_requested", notice=notice)
        if self._on_login_required is not None:
            await self._on_login_required(notice)
