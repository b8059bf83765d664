"""JSON-RPC chain reader via web3's AsyncWeb3.

Implements every on-chain collaborator the fee pipeline needs: block
resolution by binary search over block timestamps, market discovery through
the comptroller, AccrueInterest log retrieval and gauge reward reads.

Any RPC failure is re-raised as CollaboratorError; nothing is retried here.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from lending_fees.chain.abi import (
    ACCRUE_INTEREST_TOPIC,
    COMPTROLLER_ABI,
    CTOKEN_ABI,
    GAUGE_ABI,
)
from lending_fees.chain.client import (
    AccrualLogSource,
    BlockResolver,
    MarketDirectory,
    RewardAccounting,
)
from lending_fees.concurrency import gather_or_cancel
from lending_fees.config import ChainSettings
from lending_fees.exceptions import CollaboratorError, FeeAdapterError, ResolutionError
from lending_fees.logging import get_logger
from lending_fees.models import AccrualEvent, MarketDetails, RewardAccrual

logger = get_logger(__name__)

T = TypeVar("T")


class Web3ChainClient(BlockResolver, MarketDirectory, AccrualLogSource, RewardAccounting):
    """Concrete chain reader for one EVM chain."""

    def __init__(self, settings: ChainSettings, w3: AsyncWeb3 | None = None) -> None:
        self._settings = settings
        self._w3 = w3 or AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))

    @property
    def w3(self) -> AsyncWeb3:
        """Access the underlying AsyncWeb3 instance."""
        return self._w3

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        await self._w3.provider.disconnect()
        logger.info("rpc_connection_closed", chain=self._settings.name)

    # ──────────────────────────────────────────────
    # BlockResolver
    # ──────────────────────────────────────────────

    async def resolve_block(self, timestamp: int) -> int:
        """Find the first block with timestamp >= the target.

        The search keeps a bracket (lo, hi] with lo's timestamp below the
        target and hi's at or above it. Steps alternate between interpolating
        on block time, which lands within a few blocks on a chain with a
        steady block interval, and plain bisection, which bounds the number
        of RPC calls when block times are irregular.
        """
        head = await self._get_block("latest")
        if timestamp > head["timestamp"]:
            if self._settings.clamp_to_head:
                logger.debug("block_clamped_to_head", timestamp=timestamp, block=head["number"])
                return head["number"]
            raise ResolutionError(
                f"Timestamp {timestamp} is after the head block "
                f"{head['number']} ({head['timestamp']})"
            )
        genesis = await self._get_block(0)
        if timestamp < genesis["timestamp"]:
            raise ResolutionError(
                f"Timestamp {timestamp} precedes genesis ({genesis['timestamp']})"
            )
        if timestamp == genesis["timestamp"]:
            return 0

        lo, lo_ts = 0, genesis["timestamp"]
        hi, hi_ts = head["number"], head["timestamp"]
        interpolate = True
        while hi - lo > 1:
            if interpolate:
                mid = lo + (timestamp - lo_ts) * (hi - lo) // (hi_ts - lo_ts)
                mid = min(max(mid, lo + 1), hi - 1)
            else:
                mid = (lo + hi) // 2
            interpolate = not interpolate

            block = await self._get_block(mid)
            if block["timestamp"] >= timestamp:
                hi, hi_ts = mid, block["timestamp"]
            else:
                lo, lo_ts = mid, block["timestamp"]

        logger.debug("block_resolved", timestamp=timestamp, block=hi)
        return hi

    # ──────────────────────────────────────────────
    # MarketDirectory
    # ──────────────────────────────────────────────

    async def list_markets(self, comptroller: str, at_block: int | None = None) -> list[str]:
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(comptroller), abi=COMPTROLLER_ABI
        )
        markets = await self._call(
            "getAllMarkets",
            contract.functions.getAllMarkets().call(**self._block_kwargs(at_block)),
        )
        return [Web3.to_checksum_address(m) for m in markets]

    async def get_market_details(
        self, markets: list[str], at_block: int | None = None
    ) -> MarketDetails:
        details = await gather_or_cancel(
            *(self._market_detail(market, at_block) for market in markets)
        )
        return MarketDetails(
            underlyings=tuple(underlying for underlying, _ in details),
            reserve_factors=tuple(reserve_factor for _, reserve_factor in details),
        )

    async def _market_detail(self, market: str, at_block: int | None) -> tuple[str, int]:
        contract = self._market_contract(market)
        kwargs = self._block_kwargs(at_block)

        try:
            underlying = await contract.functions.underlying().call(**kwargs)
        except (ContractLogicError, BadFunctionCallOutput):
            # Native-asset markets (cETH style) have no underlying()
            underlying = self._settings.native_underlying
            logger.debug("native_market_detected", market=market)
        except Exception as exc:
            raise CollaboratorError(f"underlying() failed for {market}: {exc}") from exc

        reserve_factor = await self._call(
            f"reserveFactorMantissa() for {market}",
            contract.functions.reserveFactorMantissa().call(**kwargs),
        )
        return Web3.to_checksum_address(underlying), int(reserve_factor)

    # ──────────────────────────────────────────────
    # AccrualLogSource
    # ──────────────────────────────────────────────

    async def get_accrual_logs(
        self, market: str, from_block: int, to_block: int
    ) -> list[AccrualEvent]:
        """Fetch AccrueInterest logs in chunks of log_chunk_size blocks."""
        address = Web3.to_checksum_address(market)
        contract = self._market_contract(address)
        chunk_size = max(1, self._settings.log_chunk_size)

        events: list[AccrualEvent] = []
        current = from_block
        while current <= to_block:
            chunk_end = min(current + chunk_size - 1, to_block)
            logs = await self._call(
                f"eth_getLogs for {address} [{current}, {chunk_end}]",
                self._w3.eth.get_logs(
                    {
                        "fromBlock": current,
                        "toBlock": chunk_end,
                        "address": address,
                        "topics": [ACCRUE_INTEREST_TOPIC],
                    }
                ),
            )
            for raw_log in logs:
                events.append(self._decode_accrual(contract, address, raw_log))
            current = chunk_end + 1

        logger.debug(
            "accrual_logs_fetched",
            market=address,
            from_block=from_block,
            to_block=to_block,
            count=len(events),
        )
        return events

    @staticmethod
    def _decode_accrual(contract: Any, market: str, raw_log: Any) -> AccrualEvent:
        try:
            decoded = contract.events.AccrueInterest().process_log(raw_log)
        except Exception as exc:
            raise CollaboratorError(
                f"Undecodable AccrueInterest log from {market}: {exc}"
            ) from exc
        args = decoded["args"]
        return AccrualEvent(
            market=market,
            cash_prior=int(args["cashPrior"]),
            interest_accumulated=int(args["interestAccumulated"]),
            borrow_index_new=int(args["borrowIndex"]),
            total_borrows_new=int(args["totalBorrows"]),
            block_number=decoded["blockNumber"],
        )

    # ──────────────────────────────────────────────
    # RewardAccounting
    # ──────────────────────────────────────────────

    async def get_reward_accrual(
        self, gauge: str, reward_token: str, claimant: str, at_block: int
    ) -> RewardAccrual:
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(gauge), abi=GAUGE_ABI
        )
        token = Web3.to_checksum_address(reward_token)
        account = Web3.to_checksum_address(claimant)
        kwargs = self._block_kwargs(at_block)

        last_earn, earned = await gather_or_cancel(
            self._call("gauge lastEarn", contract.functions.lastEarn(token, account).call(**kwargs)),
            self._call("gauge earned", contract.functions.earned(token, account).call(**kwargs)),
        )
        return RewardAccrual(last_earn=int(last_earn), earned=int(earned))

    # ──────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────

    def _market_contract(self, market: str) -> Any:
        return self._w3.eth.contract(address=Web3.to_checksum_address(market), abi=CTOKEN_ABI)

    @staticmethod
    def _block_kwargs(at_block: int | None) -> dict:
        return {"block_identifier": at_block} if at_block is not None else {}

    async def _get_block(self, identifier: int | str) -> Any:
        return await self._call(f"get_block({identifier})", self._w3.eth.get_block(identifier))

    @staticmethod
    async def _call(what: str, awaitable: Awaitable[T]) -> T:
        """Await an RPC call, translating transport and node errors to CollaboratorError."""
        try:
            return await awaitable
        except FeeAdapterError:
            raise
        except Exception as exc:
            raise CollaboratorError(f"{what} failed: {exc}") from exc
