"""Cloudflare Provider - connection configuration for the Cloudflare API."""

from functools import cached_property
from typing import Any, Self

import requests
from pydantic import BaseModel, ConfigDict, SecretStr

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"


class CloudflareAPIError(Exception):
    """Raised when the Cloudflare API returns an unsuccessful response."""

    def __init__(self, status_code: int, errors: list[dict[str, Any]]) -> None:
        detail = "; ".join(f"{e.get('code')}: {e.get('message')}" for e in errors) or "no detail"
        super().__init__(f"Cloudflare API error (HTTP {status_code}): {detail}")
        self.status_code = status_code
        self.errors = errors


class CloudflareProvider(BaseModel):
    """Connection configuration for a Cloudflare account.

    For normal use, provide ``account_id`` and ``api_token``. For testing, use
    :meth:`from_session` to inject a pre-built (or mocked) session.

    Examples:
        provider = CloudflareProvider(
            account_id="0123abcd",
            api_token=SecretStr("my-token"),
        )
        provider.request("GET", "/storage/kv/namespaces")
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    account_id: str = ""
    api_token: SecretStr | None = None
    base_url: str = CLOUDFLARE_API_URL
    timeout: float = 30.0

    # Injected session (for testing)
    _injected_session: requests.Session | None = None

    @classmethod
    def from_session(cls, session: requests.Session, *, account_id: str = "test") -> Self:
        """Create a provider with an injected session."""
        provider = cls.model_construct(
            account_id=account_id,
            api_token=None,
            base_url=CLOUDFLARE_API_URL,
            timeout=30.0,
        )
        provider._injected_session = session
        return provider

    @cached_property
    def session(self) -> requests.Session:
        """Get the HTTP session, authenticated with the API token."""
        if self._injected_session is not None:
            return self._injected_session

        if not self.account_id or self.api_token is None:
            raise ValueError(
                "Either provide account_id+api_token, or use "
                "CloudflareProvider.from_session() to inject a session"
            )

        session = requests.Session()
        session.headers["Authorization"] = f"Bearer {self.api_token.get_secret_value()}"
        return session

    def account_url(self, path: str) -> str:
        return f"{self.base_url}/accounts/{self.account_id}{path}"

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send an account-scoped request and raise on API failure."""
        response = self.session.request(
            method, self.account_url(path), timeout=self.timeout, **kwargs
        )
        if not response.ok:
            try:
                errors = response.json().get("errors", [])
            except ValueError:
                errors = [{"code": response.status_code, "message": response.text}]
            raise CloudflareAPIError(response.status_code, errors)
        return response
