"""
HorizonNode: REST client for the Stellar Horizon API.

Provides the two reads the compiler needs (account sequence number and
current base fee) plus balance lookups for agents.

Docs: https://developers.stellar.org/docs/data/apis/horizon/api-reference
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from stellar_agent.config import NETWORKS, StellarConfig
from stellar_agent.core.models import AccountState, AssetBalance, AssetRef
from stellar_agent.errors import SourceAccountLoadFailedError

logger = logging.getLogger("stellar_agent.horizon")

# Protocol minimum base fee, in stroops
MIN_BASE_FEE = 100


class HorizonError(SourceAccountLoadFailedError):
    """Raised when the Horizon API cannot be reached or returns an error."""
    pass


class HorizonNode:
    """
    Synchronous client for Stellar Horizon.
    Uses the public SDF Horizon for the chosen network by default.

    Usage:
        node = HorizonNode()  # public testnet Horizon
        node = HorizonNode(horizon_url="https://horizon.stellar.org")
    """

    def __init__(
        self,
        horizon_url: str = NETWORKS["testnet"]["horizon_url"],
        timeout: float = 15.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.horizon_url = horizon_url.rstrip("/")
        self._client = http_client or httpx.Client(
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    @classmethod
    def from_config(cls, config: StellarConfig) -> HorizonNode:
        return cls(horizon_url=config.resolved_horizon_url, timeout=config.request_timeout)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def load_account(self, address: str) -> AccountState:
        """
        Read the current state of an account.

        Returns:
            AccountState: with exists=False if Horizon reports 404

        Raises:
            HorizonError: on transport failure or any other non-200 status
        """
        response = self._request(f"/accounts/{address}")
        if response.status_code == 404:
            return AccountState(account_id=address, exists=False)
        data = self._json(response)
        try:
            sequence = int(data["sequence"])
        except (KeyError, TypeError, ValueError):
            raise HorizonError(f"Account record for {address} has no usable sequence number") from None
        return AccountState(
            account_id=data.get("account_id", address),
            sequence=sequence,
            exists=True,
            balances=[self._parse_balance(b) for b in data.get("balances", [])],
        )

    def get_balance(self, address: str) -> AccountState:
        """Return the balances of an account (alias of load_account for read-only callers)."""
        return self.load_account(address)

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def current_base_fee(self) -> int:
        """
        Return the base fee of the last closed ledger, in stroops.
        Never less than the protocol minimum.
        """
        data = self._json(self._request("/fee_stats"))
        try:
            fee = int(data["last_ledger_base_fee"])
        except (KeyError, TypeError, ValueError):
            raise HorizonError(f"fee_stats response has no usable last_ledger_base_fee: {data}") from None
        return max(fee, MIN_BASE_FEE)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, path: str) -> httpx.Response:
        url = f"{self.horizon_url}{path}"
        try:
            return self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Horizon request failed for {url}: {e}")
            raise HorizonError(f"Horizon unreachable at {url}: {e}") from e

    def _json(self, response: httpx.Response) -> Any:
        if response.status_code != 200:
            raise HorizonError(
                f"Horizon error {response.status_code} for {response.url}: {response.text}"
            )
        try:
            return response.json()
        except ValueError:
            raise HorizonError(f"Horizon returned invalid JSON for {response.url}") from None

    def _parse_balance(self, data: dict[str, Any]) -> AssetBalance:
        if data.get("asset_type") == "native":
            asset = AssetRef()
        else:
            # liquidity pool shares carry no code/issuer
            asset = AssetRef(
                code=data.get("asset_code") or data.get("liquidity_pool_id"),
                issuer=data.get("asset_issuer"),
            )
        return AssetBalance(asset=asset, balance=str(data.get("balance", "0")), limit=data.get("limit"))

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> HorizonNode:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
