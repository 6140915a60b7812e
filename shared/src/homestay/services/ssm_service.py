"""SSM Parameter Store access for provider secrets.

The SePay webhook API key is read from ``SEPAY_API_KEY`` when set (local
runs, tests) and otherwise from the SecureString parameter
``/homestay/<env>/sepay/api_key``.
"""

import os
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from homestay.utils.logging import get_logger

logger = get_logger(__name__)

SEPAY_API_KEY_PARAMETER = "/homestay/{environment}/sepay/api_key"


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""


class SSMService:
    """Reads decrypted parameters from SSM, caching them per instance."""

    def __init__(self) -> None:
        self._client = boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a parameter value from SSM Parameter Store.

        Args:
            name: Full parameter path
            use_cache: Whether to use cached value if available (default: True)

        Returns:
            The decrypted parameter value.

        Raises:
            SSMServiceError: If parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            raise SSMServiceError(f"Failed to retrieve SSM parameter {name}: {e}") from e

        value: str = response["Parameter"]["Value"]
        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()


def get_sepay_api_key(environment: str) -> str | None:
    """Resolve the SePay webhook API key.

    Args:
        environment: Deployment environment used in the parameter path

    Returns:
        The key, or None when neither the env var nor the parameter exists
    """
    from_env = os.getenv("SEPAY_API_KEY")
    if from_env:
        return from_env
    name = SEPAY_API_KEY_PARAMETER.format(environment=environment)
    try:
        return get_ssm_service().get_parameter(name)
    except SSMServiceError:
        logger.warning("SePay API key is not configured (%s)", name)
        return None
