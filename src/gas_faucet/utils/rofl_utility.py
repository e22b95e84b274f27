import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class RoflUtility:
    """Client for the ROFL application daemon.

    The faucet only needs the daemon's key service: its signing key is
    derived inside the enclave instead of being passed in the environment.
    """

    ROFL_SOCKET_PATH: str = "/run/rofl-appd.sock"
    KEY_GENERATE_PATH: str = "/rofl/v1/keys/generate"
    REQUEST_TIMEOUT: float = 30.0

    def __init__(self, url: str = '') -> None:
        """Initialize ROFL utility.

        Args:
            url: Daemon address; an http(s) URL, a socket path, or empty
                for the default socket
        """
        self.url: str = url

    def _endpoint(self) -> tuple[httpx.AsyncHTTPTransport | None, str]:
        """Pick the transport and base URL for the configured daemon address."""
        if self.url.startswith('http'):
            return None, self.url

        socket_path = self.url or self.ROFL_SOCKET_PATH
        logger.debug(f"Using unix domain socket: {socket_path}")
        return httpx.AsyncHTTPTransport(uds=socket_path), "http://localhost"

    async def _appd_post(self, path: str, payload: dict[str, Any]) -> Any:
        """POST a JSON payload to the daemon and return the decoded reply.

        Raises:
            httpx.HTTPStatusError: If the daemon answers with an error status
        """
        transport, base_url = self._endpoint()

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(base_url + path, json=payload, timeout=self.REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()

    async def fetch_key(self, key_id: str) -> str:
        """Fetch (or have the daemon derive) the secp256k1 key for key_id.

        Returns:
            The private key as a hex string

        Raises:
            httpx.HTTPStatusError: If the daemon request fails
            ValueError: If the reply carries no key
        """
        response = await self._appd_post(
            self.KEY_GENERATE_PATH,
            {"key_id": key_id, "kind": "secp256k1"}
        )

        match response:
            case {"key": str(key)} if key:
                logger.debug(f"Key '{key_id}' fetched from ROFL")
                return key
            case _:
                raise ValueError(f"ROFL key response missing 'key' for {key_id}")
