"""Bearer-authenticated client for the Cloudflare v4 API."""

from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..common.config import DEFAULT_API_BASE_URL
from ..common.exceptions import (
    RemoteAPIError,
    ResponseDecodeError,
    TransportError,
)
from ..common.logging import get_logger
from ..common.utils import sanitize_log_data, validate_non_empty_string
from .models import (
    Account,
    AccountList,
    Envelope,
    Tunnel,
    TunnelConfig,
    TunnelList,
)

logger = get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "Cloudflare request failed"

ModelT = TypeVar("ModelT", bound=BaseModel)
ItemT = TypeVar("ItemT")


def extract_error_message(body: BaseModel) -> str | None:
    """Read ``body`` as a generic envelope and return its first error message.

    The body may have been parsed into any model; it is dumped back to plain
    data and re-validated as ``Envelope`` so the message can be recovered
    without knowing the concrete type.
    """
    data = body.model_dump(mode="json")
    try:
        envelope = Envelope[Any].model_validate(data)
    except ValidationError:
        return None
    return envelope.first_error_message()


def unwrap_result(envelope: Envelope[list[ItemT]]) -> list[ItemT]:
    """Return an envelope's result list, raising if it reports errors.

    Raises:
        RemoteAPIError: If ``errors`` is non-empty, even on a 2xx response
    """
    if envelope.errors:
        raise RemoteAPIError(envelope.first_error_message() or DEFAULT_ERROR_MESSAGE)
    return envelope.result if envelope.result is not None else []


class CloudflareClient:
    """Issues GET requests against the v4 API and normalizes failures.

    Every failure is raised as a :class:`~tunneldash.common.exceptions.CloudAPIError`
    subclass whose string form is the single message to show a user.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``https://api.cloudflare.com/client/v4``
            http_client: Shared httpx client; one is created (and owned) if None
            timeout: Request timeout in seconds for an owned client; None for no limit
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "CloudflareClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def fetch(self, url: str, token: str, model: type[ModelT]) -> ModelT:
        """GET ``url`` with a bearer token and parse the body into ``model``.

        The body is parsed before the status is looked at: error responses
        share the envelope shape, so a body that does not parse is reported
        as a decode error whatever the status.

        Args:
            url: Absolute request URL, query string included
            token: API token sent as ``Authorization: Bearer <token>``
            model: Pydantic model describing the success body

        Returns:
            Parsed body

        Raises:
            TransportError: If no response was received
            ResponseDecodeError: If the body does not match ``model``
            RemoteAPIError: If the status is not 2xx
        """
        logger.debug("GET", **sanitize_log_data({"url": url, "token": token}))
        try:
            response = await self._http.get(
                url, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.RequestError as e:
            message = str(e) or type(e).__name__
            logger.warning("Request failed", url=url, error=message)
            raise TransportError(message) from e

        try:
            body = model.model_validate_json(response.content)
        except ValidationError as e:
            logger.warning(
                "Unexpected response body", url=url, status_code=response.status_code
            )
            raise ResponseDecodeError(str(e)) from e

        if not response.is_success:
            message = extract_error_message(body) or DEFAULT_ERROR_MESSAGE
            logger.warning(
                "API returned an error",
                url=url,
                status_code=response.status_code,
                error=message,
            )
            raise RemoteAPIError(message, status_code=response.status_code)

        return body

    async def list_accounts(self, token: str) -> Envelope[list[Account]]:
        """List the accounts the token can see."""
        return await self.fetch(f"{self.base_url}/accounts", token, AccountList)

    async def list_tunnels(
        self, token: str, account_id: str
    ) -> Envelope[list[Tunnel]]:
        """List an account's tunnels, excluding deleted ones."""
        account_id = validate_non_empty_string(account_id, "Account ID")
        url = f"{self.base_url}/accounts/{account_id}/cfd_tunnel?is_deleted=false"
        return await self.fetch(url, token, TunnelList)

    async def get_tunnel_config(
        self, token: str, account_id: str, tunnel_id: str
    ) -> TunnelConfig:
        """Fetch a tunnel's remotely managed configuration.

        ``result`` on the returned model is always set; an empty dict stands in
        when the API omits it.
        """
        account_id = validate_non_empty_string(account_id, "Account ID")
        tunnel_id = validate_non_empty_string(tunnel_id, "Tunnel ID")
        url = (
            f"{self.base_url}/accounts/{account_id}"
            f"/cfd_tunnel/{tunnel_id}/configurations"
        )
        config = await self.fetch(url, token, TunnelConfig)
        if config.result is None:
            config.result = {}
        return config
