"""Session collaborator backed by Supabase Auth (GoTrue)."""
import httpx
import structlog

from src.application.interfaces.session_provider import Session, SessionProvider
from src.config import settings

logger = structlog.get_logger(__name__)


class SupabaseSessionProvider(SessionProvider):
    """
    Holds the signed-in user's session and talks to GoTrue to refresh or end it.

    Signing in happens elsewhere; the resulting session is handed over with
    set_session().
    """

    def __init__(
        self,
        supabase_url: str = settings.supabase_url,
        anon_key: str = settings.supabase_anon_key,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth_url = f"{supabase_url.rstrip('/')}/auth/v1"
        self._anon_key = anon_key
        self._transport = transport
        self._session: Session | None = None

    def set_session(self, session: Session | None) -> None:
        self._session = session

    async def get_current_session(self) -> Session | None:
        return self._session

    async def refresh_session(self) -> Session | None:
        if self._session is None or not self._session.refresh_token:
            return None

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._auth_url}/token",
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": self._session.refresh_token},
                    headers={"apikey": self._anon_key},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning("session_refresh_rejected", status_code=exc.response.status_code)
                return None
            except httpx.RequestError as exc:
                logger.warning("session_refresh_unreachable", error=str(exc))
                return None
            except ValueError:
                logger.warning("session_refresh_unreadable")
                return None

        self._session = Session(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            user_id=data.get("user", {}).get("id", self._session.user_id),
        )
        logger.info("session_refreshed", user_id=self._session.user_id)
        return self._session

    async def sign_out(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._auth_url}/logout",
                    headers={
                        "apikey": self._anon_key,
                        "Authorization": f"Bearer {session.access_token}",
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                # Local session is already gone; the server-side token simply expires.
                logger.warning("sign_out_request_failed", error=str(exc))
                return
        logger.info("signed_out", user_id=session.user_id)
