"""Tests for the live metadata client."""

import base64
import json

import httpx
import pytest

from holder_ledger.core.errors import ExternalMetadataUnavailable
from holder_ledger.data.registry import Endpoints
from holder_ledger.metadata import BackoffPolicy, MetadataClient

RPC = "https://rpc.test"


def _client(handler, sleeps: list[float] | None = None) -> MetadataClient:
    return MetadataClient(
        rpc_url=RPC,
        endpoints=Endpoints(),
        backoff=BackoffPolicy(retries=2, base_delay=0.5),
        transport=httpx.MockTransport(handler),
        sleep=(sleeps if sleeps is not None else []).append,
    )


def test_block_time():
    """Test the getBlockTime JSON-RPC call."""

    def handler(request):
        body = json.loads(request.content)
        assert body["method"] == "getBlockTime"
        assert body["params"] == [250_000_000]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": 1_700_000_000})

    with _client(handler) as client:
        assert client.block_time(250_000_000) == 1_700_000_000


def test_block_time_missing():
    """Test that a slot without a time is unavailable metadata."""

    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="No block time"):
        client.block_time(1)


def test_account_data_slice():
    """Test getAccountInfo with a data slice."""
    seen = {}

    def handler(request):
        body = json.loads(request.content)
        seen.update(body["params"][1])
        data = base64.b64encode(b"\x01\x02").decode()
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": {"data": [data, "base64"]}}})

    with _client(handler) as client:
        assert client.account_data("Addr", 464, 16) == b"\x01\x02"

    assert seen["dataSlice"] == {"offset": 464, "length": 16}


def test_rpc_error():
    """Test that JSON-RPC errors are surfaced."""

    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}})

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="boom"):
        client.block_time(1)


def test_retries_then_succeeds():
    """Test that server errors are retried with doubling waits."""
    calls = []
    sleeps: list[float] = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"whirlpools": []})

    with _client(handler, sleeps) as client:
        assert client.orca_whirlpools() == []

    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


def test_retries_exhausted():
    """Test that exhausted retries make metadata unavailable."""
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("down", request=request)

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="down"):
        client.kamino_markets()

    assert len(calls) == 3


def test_orca_whirlpools():
    """Test parsing of the Whirlpool list."""

    def handler(request):
        assert request.url == Endpoints().orca_whirlpools
        return httpx.Response(
            200,
            json={
                "whirlpools": [
                    {"address": "pool", "tokenA": {"mint": "A", "symbol": "mSOL"}, "tokenB": {"mint": "B", "symbol": "SOL"}}
                ]
            },
        )

    with _client(handler) as client:
        pools = client.orca_whirlpools()

    assert pools[0].address == "pool"
    assert pools[0].name == "mSOL/SOL"
    assert (pools[0].mint_a, pools[0].mint_b) == ("A", "B")


def test_raydium_official_and_unofficial():
    """Test both Raydium lists are merged."""
    pool = {"lpMint": "Lp", "baseMint": "A", "quoteMint": "B", "baseVault": "VA", "quoteVault": "VB", "id": "x"}

    def handler(request):
        return httpx.Response(200, json={"official": [pool], "unOfficial": [{**pool, "lpMint": "Lp2"}]})

    with _client(handler) as client:
        pools = client.raydium_liquidity_pools()

    assert [p.lp_mint for p in pools] == ["Lp", "Lp2"]


def test_unexpected_format():
    """Test that an unexpected body shape is unavailable metadata."""

    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="format"):
        client.meteora_vaults()


def test_meteora_and_kamino_listings():
    """Test aliased fields of Meteora and Kamino listings."""

    def handler(request):
        if "vault_info" in str(request.url):
            return httpx.Response(200, json=[{"pubkey": "V", "symbol": "mSOL", "token_address": "M", "lp_mint": "L"}])
        if "amm/pools" in str(request.url):
            return httpx.Response(
                200,
                json=[{"pool_address": "P", "pool_name": "mSOL-SOL", "lp_mint": "PL", "pool_token_mints": ["M", "S"], "pool_version": 2}],
            )
        if "strategies" in str(request.url):
            return httpx.Response(200, json=[{"address": "K", "shareMint": "KS", "tokenAMint": "M", "tokenBMint": "S"}])
        return httpx.Response(200, json=[{"lendingMarket": "Market", "isPrimary": True}])

    with _client(handler) as client:
        vault = client.meteora_vaults()[0]
        pool = client.meteora_amm_pools()[0]
        strategy = client.kamino_strategies()[0]
        markets = client.kamino_markets()

    assert (vault.address, vault.token_mint, vault.lp_mint) == ("V", "M", "L")
    assert (pool.address, pool.token_mints, pool.version) == ("P", ["M", "S"], 2)
    assert (strategy.shares_mint, strategy.token_a_mint) == ("KS", "M")
    assert markets == ["Market"]




def test_client_errors_not_retried():
    """Test that a permanent HTTP error fails on the first attempt."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="HTTP 404"):
        client.meteora_amm_pools()

    assert len(calls) == 1


def test_rate_limit_retried():
    """Test that HTTP 429 is treated as transient."""
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": 5})

    with _client(handler) as client:
        assert client.block_time(1) == 5

    assert len(calls) == 2


def test_invalid_json_not_retried():
    """Test that an undecodable body is unavailable metadata without retrying."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, content=b"<html>")

    with _client(handler) as client, pytest.raises(ExternalMetadataUnavailable, match="invalid JSON"):
        client.kamino_strategies()

    assert len(calls) == 1


def test_backoff_delays_capped():
    """Test exponential waits with a ceiling."""
    policy = BackoffPolicy(retries=4, base_delay=1.0, max_delay=5.0)

    assert list(policy.delays()) == [1.0, 2.0, 4.0, 5.0]
    assert list(BackoffPolicy(retries=0).delays()) == []


def test_program_accounts():
    """Test getProgramAccounts filters, slicing and address ordering."""
    seen = {}

    def handler(request):
        body = json.loads(request.content)
        seen.update(method=body["method"], params=body["params"])
        accounts = [
            {"pubkey": pubkey, "account": {"data": [base64.b64encode(data).decode(), "base64"]}}
            for pubkey, data in (("B", b"\x02"), ("A", b"\x01"))
        ]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": accounts})

    with _client(handler) as client:
        accounts = client.program_accounts("Program", {56: "Mint", 8: "Group"}, offset=536, length=16)

    assert accounts == [("A", b"\x01"), ("B", b"\x02")]
    assert seen["method"] == "getProgramAccounts"
    program, config = seen["params"]
    assert program == "Program"
    assert config["filters"] == [
        {"memcmp": {"offset": 8, "bytes": "Group"}},
        {"memcmp": {"offset": 56, "bytes": "Mint"}},
    ]
    assert config["dataSlice"] == {"offset": 536, "length": 16}
