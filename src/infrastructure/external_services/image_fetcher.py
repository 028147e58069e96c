import httpx
import structlog

from src.application.interfaces.image_fetcher import FetchedImage, ImageFetcher, ImageFetchError

logger = structlog.get_logger(__name__)


class HttpImageFetcher(ImageFetcher):
    """Downloads the uploaded input image from its public URL."""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> FetchedImage:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        ) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error("image_download_failed", status_code=exc.response.status_code)
                raise ImageFetchError(
                    f"Image download failed with status {exc.response.status_code}."
                ) from exc
            except httpx.RequestError as exc:
                logger.error("image_download_unreachable", error=str(exc))
                raise ImageFetchError(f"Image download failed: {exc}") from exc

        return FetchedImage(data=response.content, content_type=response.headers.get("content-type"))
