import logging

import requests
from pydantic import BaseModel

from .errors import StorageServiceError
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)


class Artifact(BaseModel):
    url: str
    content_type: str
    data: bytes


def media_type(header: str | None) -> str:
    """'image/png; charset=binary' -> 'image/png'."""
    return (header or "application/octet-stream").split(";")[0].strip().lower()


class ArtifactFetcher:
    """Downloads uploaded evidence from its public object-storage URL."""

    def __init__(self, timeout: float = 30):
        self.timeout = timeout

    def fetch(self, url: str) -> Result[Artifact]:
        try:
            r = requests.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error("Failed to fetch artifact %s: %s", url, e)
            return Err(StorageServiceError(f"Failed to fetch artifact from storage: {e}"))
        artifact = Artifact(url=url, content_type=media_type(r.headers.get("content-type")), data=r.content)
        logger.info("Fetched artifact %s (%s, %d bytes)", url, artifact.content_type, len(artifact.data))
        return Ok(artifact)
