"""Google Cloud Secret Manager access for credentials not set in the environment."""

from functools import lru_cache

from google.cloud import secretmanager

from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


class SecretManagerClient:
    """Reads secret payloads from a single GCP project."""

    def __init__(self, project_id: str) -> None:
        self._project_id = project_id
        self._client = secretmanager.SecretManagerServiceClient()

    def get_secret(self, secret_id: str, version: str = "latest") -> str:
        """Return the decoded payload of ``secret_id`` at ``version``."""
        name = f"projects/{self._project_id}/secrets/{secret_id}/versions/{version}"
        logger.info("Accessing secret", secret_id=secret_id, version=version)

        response = self._client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8").strip()


@lru_cache(maxsize=1)
def get_secret_manager(project_id: str) -> SecretManagerClient:
    """Get or create the cached client for ``project_id``."""
    return SecretManagerClient(project_id)
