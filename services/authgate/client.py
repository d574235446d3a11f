import logging

import httpx

from services.common.core.http_client import HttpClientFactory

from .config import GateConfig
from .core.paths import AUTH_QUERY_PATH
from .exceptions import AuthQueryError, ProxyRequestError
from .models import AuthOutcome, BackendEndpoint, SubRequest

logger = logging.getLogger("authgate.client")


class WwwhisperClient:
    """
    HTTP client for the wwwhisper backend.

    Holds one pooled httpx.AsyncClient for the lifetime of the process.
    Every response is opened in streaming mode so bodies can be relayed
    as raw bytes, still compressed if the backend compressed them.
    """

    def __init__(self, endpoint: BackendEndpoint, client: httpx.AsyncClient):
        self.endpoint = endpoint
        self.client = client

    @classmethod
    def from_config(
        cls, endpoint: BackendEndpoint, gate_config: GateConfig, **kwargs
    ) -> "WwwhisperClient":
        factory = HttpClientFactory(gate_config)
        factory.configure_global_settings()
        kwargs.setdefault(
            "limits",
            httpx.Limits(
                max_keepalive_connections=min(100, gate_config.WWWHISPER_MAX_CONNECTIONS),
                max_connections=gate_config.WWWHISPER_MAX_CONNECTIONS,
            ),
        )
        client = factory.create_async_client(
            base_url=endpoint.origin,
            auth=endpoint.auth,
            timeout=gate_config.WWWHISPER_TIMEOUT,
            **kwargs,
        )
        return cls(endpoint, client)

    async def check_authorization(self, path: str, headers: dict) -> AuthOutcome:
        """
        Ask the backend whether ``path`` may be served to this visitor.

        Raises:
            AuthQueryError: the backend could not be reached
        """
        sub_request = SubRequest(
            method="GET", path=AUTH_QUERY_PATH, headers=headers, params={"path": path}
        )
        try:
            response = await self._send(sub_request)
        except httpx.RequestError as exc:
            raise AuthQueryError(exc) from exc

        outcome = AuthOutcome(
            status_code=response.status_code,
            headers=response.headers,
            response=response,
            user=response.headers.get("User"),
        )
        if outcome.granted:
            await response.aclose()
        logger.debug(
            "Authorization of %s: %s",
            path,
            response.status_code,
            extra={"path": path, "status": response.status_code, "user": outcome.user},
        )
        return outcome

    async def proxy(self, sub_request: SubRequest) -> httpx.Response:
        """
        Forward a request to the backend and return its open streamed response.

        The caller must close the response once the body is relayed.

        Raises:
            ProxyRequestError: the backend could not be reached
        """
        try:
            return await self._send(sub_request)
        except httpx.RequestError as exc:
            raise ProxyRequestError(exc) from exc

    async def _send(self, sub_request: SubRequest) -> httpx.Response:
        logger.debug("%s %s%s", sub_request.method, self.endpoint, sub_request.path)
        request = self.client.build_request(
            sub_request.method,
            sub_request.path,
            headers=sub_request.headers,
            params=sub_request.params,
            content=sub_request.body,
        )
        return await self.client.send(request, stream=True)

    async def aclose(self) -> None:
        await self.client.aclose()
