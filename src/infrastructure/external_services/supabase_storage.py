"""Object storage collaborator backed by Supabase Storage."""
import httpx
import structlog

from src.application.interfaces.object_storage import ObjectStorage
from src.application.interfaces.session_provider import SessionProvider
from src.config import settings
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import ImageUploadError, SessionInvalidatedError

logger = structlog.get_logger(__name__)


class SupabaseObjectStorage(ObjectStorage):
    def __init__(
        self,
        session_provider: SessionProvider,
        supabase_url: str = settings.supabase_url,
        anon_key: str = settings.supabase_anon_key,
        bucket: str = settings.supabase_storage_bucket,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._session_provider = session_provider
        self._storage_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self._anon_key = anon_key
        self._bucket = bucket
        self._transport = transport

    def public_url(self, path: str) -> str:
        return f"{self._storage_url}/object/public/{self._bucket}/{path}"

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        session = await self._session_provider.get_current_session()
        if session is None:
            raise SessionInvalidatedError(SessionFailureReason.MISSING_SESSION)

        async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._storage_url}/object/{self._bucket}/{path}",
                    content=data,
                    headers={
                        "apikey": self._anon_key,
                        "Authorization": f"Bearer {session.access_token}",
                        "Content-Type": content_type,
                        "x-upsert": "false",
                    },
                )
            except httpx.RequestError as exc:
                logger.error("image_upload_unreachable", path=path, error=str(exc))
                raise ImageUploadError(f"Image upload failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise SessionInvalidatedError(SessionFailureReason.REJECTED_BY_SERVER)
        if response.is_error:
            logger.error("image_upload_failed", path=path, status_code=response.status_code)
            raise ImageUploadError(f"Image upload failed: {_error_message(response)}")

        return self.public_url(path)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"status {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"status {response.status_code}")
    return f"status {response.status_code}"
