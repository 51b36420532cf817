"""XRPL DEX adapter API: latest block, assets, pairs and swap events.

Usage:
    uvicorn services.api.main:app --port 3000
"""

import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from packages.xrpl_dex.assets import resolve_assets
from packages.xrpl_dex.cache import RateLimiter, TTLCache
from packages.xrpl_dex.errors import (
    AdapterError,
    InvalidRange,
    LedgerFetchError,
    MalformedIdentifier,
    PairNotFound,
    RpcError,
)
from packages.xrpl_dex.pairs import resolve_pair
from packages.xrpl_dex.rpc import DEFAULT_RPC_URL, LedgerRpcClient, LedgerSource
from packages.xrpl_dex.scanner import fetch_latest_block, scan_ledger_range

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Configuration from environment
XRPL_RPC_URL = os.getenv("XRPL_RPC_URL", DEFAULT_RPC_URL)
XRPL_RPC_TIMEOUT_SECONDS = float(os.getenv("XRPL_RPC_TIMEOUT_SECONDS", "20"))
XRPL_RPC_MAX_RETRIES = int(os.getenv("XRPL_RPC_MAX_RETRIES", "3"))
XRPL_REQUIRE_TXN_SUCCESS = os.getenv("XRPL_REQUIRE_TXN_SUCCESS", "false").strip().lower() in (
    "1",
    "true",
    "yes",
)
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "600"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))
EVENTS_MAX_BLOCK_RANGE = int(os.getenv("EVENTS_MAX_BLOCK_RANGE", "1000"))
EVENTS_MAX_WORKERS = int(os.getenv("EVENTS_MAX_WORKERS", "1"))


# Response models
class BlockRef(BaseModel):
    blockNumber: int
    blockTimestamp: int


class LatestBlockResponse(BaseModel):
    """Response body for /latest-block."""

    block: BlockRef


class Reserves(BaseModel):
    asset0: str
    asset1: str


class SwapEventModel(BaseModel):
    block: BlockRef
    eventType: str
    txnId: str
    txnIndex: int
    eventIndex: int
    maker: str
    pairId: str
    asset0In: str
    asset1Out: str
    priceNative: str
    reserves: Reserves


class EventsResponse(BaseModel):
    """Response body for /events."""

    events: list[SwapEventModel]
    skippedTransactions: int


class AssetsResponse(BaseModel):
    """Response body for /asset; failed items carry ``error`` instead of fields."""

    assets: list[dict[str, Any]]


class PairModel(BaseModel):
    id: str
    dexKey: str
    asset0Id: str
    asset1Id: str
    feeBps: int
    createdAtBlockNumber: Optional[Any] = None
    createdAtBlockTimestamp: Optional[int] = None


class PairResponse(BaseModel):
    """Response body for /pair."""

    pair: PairModel


def _http_error(exc: AdapterError) -> HTTPException:
    """Map an adapter error to the HTTP status the caller sees."""
    if isinstance(exc, (MalformedIdentifier, InvalidRange)):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, PairNotFound):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, (LedgerFetchError, RpcError)):
        return HTTPException(status_code=502, detail=exc.message)
    return HTTPException(status_code=500, detail="Internal server error")


def _split_ids(values: Optional[list[str]]) -> list[str]:
    ids: list[str] = []
    for value in values or []:
        ids.extend(part.strip() for part in value.split(",") if part.strip())
    return ids


def create_app(
    source: Optional[LedgerSource] = None,
    cache: Optional[TTLCache] = None,
    limiter: Optional[RateLimiter] = None,
    require_success: bool = XRPL_REQUIRE_TXN_SUCCESS,
    max_workers: int = EVENTS_MAX_WORKERS,
    max_range: int = EVENTS_MAX_BLOCK_RANGE,
) -> FastAPI:
    """Create the adapter application around one shared ledger source.

    Parameters
    ----------
    source:
        Ledger collaborator. Defaults to a pooled :class:`LedgerRpcClient`
        for ``XRPL_RPC_URL``; tests pass an in-memory fake.
    cache, limiter:
        Process-wide cache and rate limiter. Defaults follow the env config.
    """
    _source = source or LedgerRpcClient(
        rpc_url=XRPL_RPC_URL,
        timeout=XRPL_RPC_TIMEOUT_SECONDS,
        max_retries=XRPL_RPC_MAX_RETRIES,
    )
    _cache = cache if cache is not None else TTLCache(ttl_seconds=CACHE_TTL_SECONDS)
    _limiter = limiter if limiter is not None else RateLimiter(
        max_requests=RATE_LIMIT_MAX_REQUESTS,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    )

    app = FastAPI(
        title="XRPL DEX Adapter API",
        description="Swap events, assets and pairs from the XRP Ledger DEX",
        version="0.1.0",
    )

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        client_key = request.client.host if request.client else "unknown"
        if not _limiter.allow(client_key):
            logger.warning(f"Rate limit exceeded for {client_key}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later."},
            )
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def invalid_parameters(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        detail = f"Invalid value for {', '.join(fields)}" if fields else "Invalid request"
        return JSONResponse(status_code=400, content={"detail": detail})

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "xrpl-dex-adapter"}

    @app.get("/latest-block", response_model=LatestBlockResponse)
    def latest_block():
        """Latest validated ledger index and its close time in Unix seconds."""
        cached = _cache.get("latest-block")
        if cached is not None:
            return cached

        try:
            head = fetch_latest_block(_source)
        except AdapterError as exc:
            logger.error(f"Error fetching latest block: {exc.message}")
            raise _http_error(exc)

        block = {"block": {"blockNumber": head.index, "blockTimestamp": head.close_time_unix}}
        _cache.set("latest-block", block)
        return block

    @app.get("/asset", response_model=AssetsResponse)
    def asset_info(id: Optional[list[str]] = Query(default=None)):
        """
        Describe one or more assets.

        - ``id`` may repeat and/or hold comma-separated ids
        - Each id is ``XRP`` or ``currency.issuer``
        - Per-asset failures are reported inline with an ``error`` field
        """
        asset_ids = _split_ids(id)
        if not asset_ids:
            raise HTTPException(status_code=400, detail="Asset ID is required")

        logger.info(f"Resolving {len(asset_ids)} asset(s)")
        return {"assets": resolve_assets(_source, asset_ids, cache=_cache)}

    @app.get("/pair", response_model=PairResponse)
    def pair_info(id: Optional[str] = Query(default=None)):
        """Describe a ``base_quote`` pair from the best offer in its order book."""
        if not id:
            raise HTTPException(status_code=400, detail="Pair ID is required")

        cache_key = f"pair-{id}"
        cached = _cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            pair = {"pair": resolve_pair(_source, id).to_dict()}
        except AdapterError as exc:
            if not isinstance(exc, (PairNotFound, MalformedIdentifier)):
                logger.error(f"Error fetching pair {id}: {exc.message}")
            raise _http_error(exc)

        _cache.set(cache_key, pair)
        return pair

    @app.get("/events", response_model=EventsResponse)
    def events(
        fromBlock: Optional[int] = Query(default=None),
        toBlock: Optional[int] = Query(default=None),
    ):
        """
        Swap events for every ledger in ``[fromBlock, toBlock]``.

        - Ledgers ascending, transactions in ledger order
        - Any ledger that cannot be fetched fails the whole request
        - Malformed transactions are skipped and counted
        """
        if fromBlock is None or toBlock is None:
            raise HTTPException(status_code=400, detail="Both fromBlock and toBlock are required")

        try:
            result = scan_ledger_range(
                _source,
                fromBlock,
                toBlock,
                require_success=require_success,
                max_workers=max_workers,
                max_range=max_range,
            )
        except AdapterError as exc:
            if not isinstance(exc, InvalidRange):
                logger.error(f"Error fetching events {fromBlock}-{toBlock}: {exc.message}")
            raise _http_error(exc)

        logger.info(
            f"Events {fromBlock}-{toBlock}: {len(result.events)} events from "
            f"{result.transactions_seen} transactions in {result.ledgers_scanned} ledgers"
        )
        return result.as_dict()

    return app


app = create_app()
