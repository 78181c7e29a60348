# storefront/services/image_client.py
import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import IMAGE_SERVICE_URL, IMAGE_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ImageClient:
    def __init__(self, base_url: str | None = None, timeout: float = IMAGE_TIMEOUT_SECONDS,
                 session: requests.Session | None = None):
        self.base_url = (base_url or IMAGE_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @http_retry()
    def upload(self, raw_image: str) -> str:
        url = f"{self.base_url}/upload"
        logger.info(f"ImageClient POST {url}")

        resp = self.session.post(url, json={"file": raw_image}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()["secure_url"]
