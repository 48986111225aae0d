"""Live protocol metadata: REST pool lists and Solana JSON-RPC lookups."""

import base64
import logging
import os
import time
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from holder_ledger.core.errors import ExternalMetadataUnavailable
from holder_ledger.data.registry import Endpoints
from holder_ledger.metadata.backoff import BackoffPolicy, describe, is_transient
from holder_ledger.metadata.models import (
    KaminoStrategyListing,
    MeteoraPoolListing,
    MeteoraVaultListing,
    RaydiumPoolListing,
    WhirlpoolListing,
)

logger = logging.getLogger(__name__)

RPC_URL_ENV = "SOLANA_RPC_URL"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"


class MetadataSource(Protocol):
    """Live metadata consumed by extractors and the filter descriptor."""

    def block_time(self, slot: int) -> int: ...

    def account_data(self, address: str, offset: int | None = None, length: int | None = None) -> bytes: ...

    def program_accounts(
        self, program: str, memcmp: dict[int, str], offset: int | None = None, length: int | None = None
    ) -> list[tuple[str, bytes]]: ...

    def orca_whirlpools(self) -> list[WhirlpoolListing]: ...

    def raydium_liquidity_pools(self) -> list[RaydiumPoolListing]: ...

    def meteora_vaults(self) -> list[MeteoraVaultListing]: ...

    def meteora_amm_pools(self) -> list[MeteoraPoolListing]: ...

    def kamino_markets(self) -> list[str]: ...

    def kamino_strategies(self) -> list[KaminoStrategyListing]: ...


class MetadataClient:
    """
    Client for the live metadata a snapshot run cannot do without.

    Transient failures (connection errors, HTTP 429 and 5xx) are repeated
    on the backoff schedule; a permanent failure, or a transient one that
    outlasts the schedule, surfaces as ``ExternalMetadataUnavailable``.
    There is no partial result to resume from: the run is simply repeated.

    Parameters
    ----------
    rpc_url : str | None
        Solana JSON-RPC endpoint; defaults to ``$SOLANA_RPC_URL``
    endpoints : Endpoints | None
        REST endpoints of protocol pool lists
    timeout : float
        Request timeout in seconds
    backoff : BackoffPolicy | None
        Retry schedule (3 retries, 1s doubling up to 30s by default)
    transport : httpx.BaseTransport | None
        Custom transport (tests use ``httpx.MockTransport``)
    sleep : Callable[[float], None]
        Wait function between attempts

    """

    def __init__(
        self,
        rpc_url: str | None = None,
        endpoints: Endpoints | None = None,
        timeout: float = 30.0,
        backoff: BackoffPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rpc_url = rpc_url or os.getenv(RPC_URL_ENV) or DEFAULT_RPC_URL
        self.endpoints = endpoints or Endpoints()
        self.client = httpx.Client(timeout=timeout, transport=transport)
        self.backoff = backoff or BackoffPolicy()
        self.sleep = sleep
        self._request_id = 0

    def _send(self, what: str, method: str, url: str, payload: dict[str, Any] | None = None) -> Any:
        """
        Issue a request and decode its JSON body, repeating transient failures.

        Raises
        ------
        ExternalMetadataUnavailable
            On a permanent failure, an undecodable body, or once the retries are spent

        """
        delays = self.backoff.delays()
        while True:
            try:
                response = self.client.request(method, url, json=payload)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as e:
                delay = next(delays, None) if is_transient(e) else None
                if delay is None:
                    msg = f"{what} failed: {describe(e)}"
                    raise ExternalMetadataUnavailable(msg) from e
                logger.warning("%s failed (%s), retrying in %.1fs", what, describe(e), delay)
                self.sleep(delay)
            except ValueError as e:
                msg = f"{what} returned invalid JSON: {e}"
                raise ExternalMetadataUnavailable(msg) from e

    def _get_json(self, url: str) -> Any:
        return self._send(f"GET {url}", "GET", url)

    def _rpc(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        body = self._send(f"RPC {method}", "POST", self.rpc_url, payload)
        if not isinstance(body, dict):
            msg = f"RPC {method} returned an unexpected body"
            raise ExternalMetadataUnavailable(msg)
        if "error" in body:
            msg = f"RPC {method} error: {body['error']}"
            raise ExternalMetadataUnavailable(msg)
        return body.get("result")

    # -- JSON-RPC ---------------------------------------------------------

    def block_time(self, slot: int) -> int:
        """
        Wall-clock time of a slot.

        Raises
        ------
        ExternalMetadataUnavailable
            If the RPC call fails or the slot has no recorded time

        """
        result = self._rpc("getBlockTime", [slot])
        if result is None:
            msg = f"No block time for slot {slot}"
            raise ExternalMetadataUnavailable(msg)
        return int(result)

    def account_data(self, address: str, offset: int | None = None, length: int | None = None) -> bytes:
        """
        Live data of an account, optionally sliced.

        Raises
        ------
        ExternalMetadataUnavailable
            If the RPC call fails or the account does not exist

        """
        config: dict[str, Any] = {"encoding": "base64"}
        if offset is not None and length is not None:
            config["dataSlice"] = {"offset": offset, "length": length}
        result = self._rpc("getAccountInfo", [address, config])
        value = (result or {}).get("value")
        if not value:
            msg = f"Account {address} not found"
            raise ExternalMetadataUnavailable(msg)
        data, _encoding = value["data"]
        return base64.b64decode(data)

    def program_accounts(
        self,
        program: str,
        memcmp: dict[int, str],
        offset: int | None = None,
        length: int | None = None,
    ) -> list[tuple[str, bytes]]:
        """
        Accounts of a program matching byte filters, optionally sliced.

        Parameters
        ----------
        program : str
            Owning program
        memcmp : dict[int, str]
            Base58 bytes expected at each offset
        offset : int | None
            Start of the returned data slice
        length : int | None
            Length of the returned data slice

        Returns
        -------
        list[tuple[str, bytes]]
            (address, data) pairs sorted by address

        """
        config: dict[str, Any] = {
            "encoding": "base64",
            "filters": [{"memcmp": {"offset": at, "bytes": value}} for at, value in sorted(memcmp.items())],
        }
        if offset is not None and length is not None:
            config["dataSlice"] = {"offset": offset, "length": length}
        result = self._rpc("getProgramAccounts", [program, config])
        try:
            accounts = [(entry["pubkey"], base64.b64decode(entry["account"]["data"][0])) for entry in result or []]
        except (KeyError, TypeError, IndexError, ValueError) as e:
            msg = f"Unexpected getProgramAccounts result for {program}: {e}"
            raise ExternalMetadataUnavailable(msg) from e
        return sorted(accounts)

    # -- protocol pool lists ---------------------------------------------

    def orca_whirlpools(self) -> list[WhirlpoolListing]:
        """All Whirlpools listed by Orca."""
        body = self._get_json(self.endpoints.orca_whirlpools)
        try:
            return [
                WhirlpoolListing(
                    address=pool["address"],
                    name=f"{pool['tokenA'].get('symbol', '?')}/{pool['tokenB'].get('symbol', '?')}",
                    mint_a=pool["tokenA"]["mint"],
                    mint_b=pool["tokenB"]["mint"],
                )
                for pool in body["whirlpools"]
            ]
        except (KeyError, TypeError) as e:
            msg = f"Unexpected Orca whirlpool list format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def raydium_liquidity_pools(self) -> list[RaydiumPoolListing]:
        """Official and unofficial Raydium constant-product pools."""
        body = self._get_json(self.endpoints.raydium_liquidity)
        try:
            pools = [*body.get("official", []), *body.get("unOfficial", [])]
            return [RaydiumPoolListing.model_validate(pool) for pool in pools]
        except (AttributeError, ValidationError) as e:
            msg = f"Unexpected Raydium liquidity list format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def meteora_vaults(self) -> list[MeteoraVaultListing]:
        """Meteora yield vaults."""
        body = self._get_json(self.endpoints.meteora_vaults)
        try:
            return [MeteoraVaultListing.model_validate(vault) for vault in body]
        except (TypeError, ValidationError) as e:
            msg = f"Unexpected Meteora vault info format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def meteora_amm_pools(self) -> list[MeteoraPoolListing]:
        """Meteora AMM pools."""
        body = self._get_json(self.endpoints.meteora_amm_pools)
        try:
            return [MeteoraPoolListing.model_validate(pool) for pool in body]
        except (TypeError, ValidationError) as e:
            msg = f"Unexpected Meteora pool list format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def kamino_markets(self) -> list[str]:
        """Kamino lending market addresses."""
        body = self._get_json(self.endpoints.kamino_markets)
        try:
            return [market["lendingMarket"] for market in body]
        except (KeyError, TypeError) as e:
            msg = f"Unexpected Kamino market list format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def kamino_strategies(self) -> list[KaminoStrategyListing]:
        """Kamino automated liquidity strategies."""
        body = self._get_json(self.endpoints.kamino_strategies)
        try:
            return [KaminoStrategyListing.model_validate(strategy) for strategy in body]
        except (TypeError, ValidationError) as e:
            msg = f"Unexpected Kamino strategy list format: {e}"
            raise ExternalMetadataUnavailable(msg) from e

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "MetadataClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
