"""HTTP client for a pipeline instance's debug and metrics endpoints."""

from dataclasses import dataclass

import httpx
from pydantic import BaseModel


class VersionInfo(BaseModel):
    """Response from GET /version."""

    version: str
    built: str = ""


@dataclass
class PipelineClient:
    """
    Pipeline HTTP API client with injected httpx client.

    The httpx.AsyncClient should be pre-configured with the pipeline's
    base_url (e.g., http://orders-pipeline:4195). Endpoints are served under
    `prefix`, which defaults to the /benthos namespace every instance
    registers.

    Errors are not retried here; the polling layer decides what to do.

    Example:
        async with httpx.AsyncClient(base_url="http://localhost:4195") as http:
            client = PipelineClient(http=http)
            yaml_text = await client.fetch_config()
            metrics_body = await client.fetch_metrics()
    """

    http: httpx.AsyncClient
    prefix: str = "/benthos"

    def _path(self, path: str) -> str:
        return f"{self.prefix}{path}"

    async def fetch_config(self) -> str:
        """
        Fetch the running pipeline definition as YAML.

        Raises:
            httpx.HTTPStatusError: On HTTP errors (4xx, 5xx responses)
        """
        response = await self.http.get(self._path("/debug/config/yaml"))
        response.raise_for_status()
        return response.text

    async def fetch_metrics(self) -> bytes:
        """
        Fetch Prometheus exposition text as raw bytes.

        The body is not decoded here; parse_exposition() decodes it strictly
        so that a body that isn't UTF-8 surfaces as a ParseError.

        Raises:
            httpx.HTTPStatusError: On HTTP errors (4xx, 5xx responses)
        """
        response = await self.http.get(self._path("/metrics"))
        response.raise_for_status()
        return response.content

    async def fetch_version(self) -> VersionInfo:
        """
        Fetch version and build date.

        Raises:
            httpx.HTTPStatusError: On HTTP errors (4xx, 5xx responses)
            pydantic.ValidationError: On malformed response data
        """
        response = await self.http.get(self._path("/version"))
        response.raise_for_status()
        return VersionInfo.model_validate(response.json())

    async def check_ready(self) -> bool:
        """
        Check whether the instance reports ready.

        Returns:
            True on a 2xx response, False on any other status or transport error
        """
        try:
            response = await self.http.get(self._path("/ready"))
        except httpx.HTTPError:
            return False
        return response.is_success


def create_client(base_url: str, timeout: float = 10.0) -> PipelineClient:
    """Create a PipelineClient with its own httpx.AsyncClient."""
    return PipelineClient(http=httpx.AsyncClient(base_url=base_url, timeout=timeout))
