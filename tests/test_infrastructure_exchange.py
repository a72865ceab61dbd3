"""
Tests for the exchange infrastructure adapters.

- In-memory unit of work: staging, rollback, commit-time version check.
- SQL unit of work on a temporary SQLite file (aiosqlite).
- CoinGecko price source against an httpx.MockTransport.
- Fixed price source.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from app.application.exchange.dtos import ExecuteTradeCommand
from app.application.exchange.execute_trade import ExecuteTradeUseCase
from app.domain.exchange.entities import Side, TransactionType, Wallet
from app.domain.exchange.errors import (
    ConcurrencyConflictError,
    DependencyTimeoutError,
    ErrorKind,
    NegativeBalanceError,
    PriceUnavailableError,
)
from app.infrastructure.exchange.coingecko_price_source import CoinGeckoPriceSource
from app.infrastructure.exchange.database import init_schema
from app.infrastructure.exchange.fixed_price_source import FixedPriceSource
from app.infrastructure.exchange.memory_unit_of_work import InMemoryExchangeUnitOfWork
from app.infrastructure.exchange.sql_unit_of_work import SqlExchangeUnitOfWork
from tests.factories import FIAT, USER, make_deposit, make_wallet

NOW = datetime(2026, 5, 1, 9, 30, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════
# In-memory unit of work
# ══════════════════════════════════════════════════════════════════════


class TestInMemoryUnitOfWork:
    """Tests for InMemoryExchangeUnitOfWork."""

    @pytest.mark.asyncio
    async def test_uncommitted_writes_are_discarded(self, storage) -> None:
        storage.seed_wallet(make_wallet(EGP="100"))

        async with InMemoryExchangeUnitOfWork(storage) as uow:
            snapshot = await uow.wallets.read_wallet(USER)
            updated = await uow.wallets.apply_balance_delta(snapshot, {FIAT: Decimal("-10")})
            await uow.ledger.append(make_deposit())
            assert (await uow.wallets.read_wallet(USER)) == updated
            assert await uow.ledger.count_for_user(USER) == 1

        assert storage.wallets[USER].balance_of(FIAT) == Decimal("100")
        assert storage.transactions == []

    @pytest.mark.asyncio
    async def test_commit_publishes_wallet_and_record_together(self, storage) -> None:
        storage.seed_wallet(make_wallet(EGP="100"))

        async with InMemoryExchangeUnitOfWork(storage) as uow:
            snapshot = await uow.wallets.read_wallet(USER)
            await uow.wallets.apply_balance_delta(snapshot, {FIAT: Decimal("-10")})
            await uow.ledger.append(make_deposit())
            await uow.commit()

        assert storage.wallets[USER].balance_of(FIAT) == Decimal("90")
        assert storage.wallets[USER].version == 2
        assert len(storage.transactions) == 1

    @pytest.mark.asyncio
    async def test_stale_snapshot_conflicts(self, storage) -> None:
        storage.seed_wallet(make_wallet(EGP="100", version=1))
        stale = make_wallet(EGP="100", version=0)

        async with InMemoryExchangeUnitOfWork(storage) as uow:
            with pytest.raises(ConcurrencyConflictError):
                await uow.wallets.apply_balance_delta(stale, {FIAT: Decimal("-1")})

    @pytest.mark.asyncio
    async def test_commit_rechecks_versions(self, storage) -> None:
        storage.seed_wallet(make_wallet(EGP="100", version=1))
        first = InMemoryExchangeUnitOfWork(storage)
        second = InMemoryExchangeUnitOfWork(storage)

        async with first, second:
            a = await first.wallets.read_wallet(USER)
            b = await second.wallets.read_wallet(USER)
            await first.wallets.apply_balance_delta(a, {FIAT: Decimal("-60")})
            await second.wallets.apply_balance_delta(b, {FIAT: Decimal("-60")})
            await first.commit()
            with pytest.raises(ConcurrencyConflictError):
                await second.commit()

        assert storage.wallets[USER].balance_of(FIAT) == Decimal("40")

    @pytest.mark.asyncio
    async def test_second_create_conflicts(self, storage) -> None:
        storage.seed_wallet(make_wallet())

        async with InMemoryExchangeUnitOfWork(storage) as uow:
            with pytest.raises(ConcurrencyConflictError):
                await uow.wallets.create_wallet(Wallet.opened(USER, [FIAT]))


# ══════════════════════════════════════════════════════════════════════
# SQL unit of work (SQLite through aiosqlite)
# ══════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'exchange.db'}")
    await init_schema(engine)
    yield engine
    await engine.dispose()


async def _create(engine, wallet: Wallet) -> None:
    async with SqlExchangeUnitOfWork(engine) as uow:
        await uow.wallets.create_wallet(wallet)
        await uow.commit()


async def _read(engine, user_id: str = USER):
    async with SqlExchangeUnitOfWork(engine) as uow:
        return await uow.wallets.read_wallet(user_id)


async def _count(engine, user_id: str = USER) -> int:
    async with SqlExchangeUnitOfWork(engine) as uow:
        return await uow.ledger.count_for_user(user_id)


class TestSqlWalletStore:
    """Tests for SqlWalletStore through SqlExchangeUnitOfWork."""

    @pytest.mark.asyncio
    async def test_missing_wallet_reads_as_none(self, engine) -> None:
        assert await _read(engine) is None

    @pytest.mark.asyncio
    async def test_created_wallet_keeps_exact_decimals(self, engine) -> None:
        await _create(
            engine,
            Wallet(
                user_id=USER,
                balances={FIAT: Decimal("1000.10"), "BTC": Decimal("0.12345678")},
                bonus_balance=Decimal("25"),
                version=0,
                updated_at=NOW,
            ),
        )

        wallet = await _read(engine)

        assert wallet.balances == {FIAT: Decimal("1000.10"), "BTC": Decimal("0.12345678")}
        assert wallet.bonus_balance == Decimal("25")
        assert wallet.version == 0
        assert wallet.updated_at == NOW

    @pytest.mark.asyncio
    async def test_duplicate_wallet_conflicts(self, engine) -> None:
        await _create(engine, Wallet.opened(USER, [FIAT]))

        with pytest.raises(ConcurrencyConflictError):
            await _create(engine, Wallet.opened(USER, [FIAT]))

    @pytest.mark.asyncio
    async def test_conditional_update_applies_and_bumps_version(self, engine) -> None:
        await _create(engine, Wallet.opened(USER, [FIAT, "BTC"]))
        snapshot = await _read(engine)

        async with SqlExchangeUnitOfWork(engine) as uow:
            await uow.wallets.apply_balance_delta(
                snapshot, {FIAT: Decimal("500"), "ETH": Decimal("0.5")}
            )
            await uow.commit()

        wallet = await _read(engine)
        assert wallet.version == 1
        assert wallet.balance_of(FIAT) == Decimal("500")
        assert wallet.balance_of("ETH") == Decimal("0.5")
        assert wallet.balance_of("BTC") == Decimal("0")

    @pytest.mark.asyncio
    async def test_stale_snapshot_conflicts(self, engine) -> None:
        await _create(engine, make_wallet(EGP="100", version=0))
        stale = await _read(engine)

        async with SqlExchangeUnitOfWork(engine) as uow:
            await uow.wallets.apply_balance_delta(stale, {FIAT: Decimal("-30")})
            await uow.commit()

        async with SqlExchangeUnitOfWork(engine) as uow:
            with pytest.raises(ConcurrencyConflictError):
                await uow.wallets.apply_balance_delta(stale, {FIAT: Decimal("-30")})

        assert (await _read(engine)).balance_of(FIAT) == Decimal("70")

    @pytest.mark.asyncio
    async def test_negative_balance_refused(self, engine) -> None:
        await _create(engine, make_wallet(EGP="10", version=0))
        snapshot = await _read(engine)

        async with SqlExchangeUnitOfWork(engine) as uow:
            with pytest.raises(NegativeBalanceError):
                await uow.wallets.apply_balance_delta(snapshot, {FIAT: Decimal("-10.01")})

        assert (await _read(engine)).version == 0

    @pytest.mark.asyncio
    async def test_exit_without_commit_rolls_back_both(self, engine) -> None:
        await _create(engine, make_wallet(EGP="100", version=0))
        snapshot = await _read(engine)

        async with SqlExchangeUnitOfWork(engine) as uow:
            await uow.wallets.apply_balance_delta(snapshot, {FIAT: Decimal("-50")})
            await uow.ledger.append(make_deposit())

        wallet = await _read(engine)
        assert wallet.balance_of(FIAT) == Decimal("100")
        assert wallet.version == 0
        assert await _count(engine) == 0


class TestSqlOrderLedger:
    """Tests for SqlOrderLedger through SqlExchangeUnitOfWork."""

    @pytest.mark.asyncio
    async def test_append_get_and_list(self, engine) -> None:
        records = [
            make_deposit(amount=str(100 + i), created_at=NOW + timedelta(seconds=i))
            for i in range(3)
        ]
        async with SqlExchangeUnitOfWork(engine) as uow:
            for record in records:
                await uow.ledger.append(record)
            await uow.ledger.append(make_deposit(user_id="someone-else"))
            await uow.commit()

        async with SqlExchangeUnitOfWork(engine) as uow:
            fetched = await uow.ledger.get(records[0].id)
            listed = await uow.ledger.list_for_user(USER, limit=2)
            buys = await uow.ledger.list_for_user(USER, type=TransactionType.BUY)
            count = await uow.ledger.count_for_user(USER)

        assert fetched == records[0]
        assert [r.id for r in listed] == [records[2].id, records[1].id]
        assert buys == []
        assert count == 3


class TestSqlTradeSettlement:
    """End-to-end trade against the SQL adapter."""

    @pytest.mark.asyncio
    async def test_buy_updates_wallet_and_ledger(self, engine, prices, policy) -> None:
        await _create(engine, make_wallet(EGP="3000", version=0))
        executor = ExecuteTradeUseCase(prices, lambda: SqlExchangeUnitOfWork(engine), policy)

        result = await executor.execute(
            ExecuteTradeCommand(user_id=USER, symbol="BTC", side=Side.BUY, quantity="0.001")
        )

        assert result.ok is True
        wallet = await _read(engine)
        assert wallet.balance_of(FIAT) == Decimal("998.00")
        assert wallet.balance_of("BTC") == Decimal("0.001")
        async with SqlExchangeUnitOfWork(engine) as uow:
            record = await uow.ledger.get(result.transaction_id)
        assert record.total == Decimal("2000.00")
        assert record.fee == Decimal("2.00")

    @pytest.mark.asyncio
    async def test_failed_buy_leaves_no_trace(self, engine, prices, policy) -> None:
        await _create(engine, make_wallet(EGP="1000", version=0))
        executor = ExecuteTradeUseCase(prices, lambda: SqlExchangeUnitOfWork(engine), policy)

        result = await executor.execute(
            ExecuteTradeCommand(user_id=USER, symbol="BTC", side=Side.BUY, quantity="0.001")
        )

        assert result.ok is False
        wallet = await _read(engine)
        assert wallet.balance_of(FIAT) == Decimal("1000")
        assert wallet.version == 0
        assert await _count(engine) == 0

    @pytest.mark.asyncio
    async def test_concurrent_sells_of_whole_balance_settle_once(self, engine, prices, policy) -> None:
        await _create(engine, make_wallet(EGP="0", BTC="0.001", version=0))
        executor = ExecuteTradeUseCase(
            prices, lambda: SqlExchangeUnitOfWork(engine), policy, max_attempts=10
        )
        sell = ExecuteTradeCommand(user_id=USER, symbol="BTC", side=Side.SELL, quantity="0.001")

        results = await asyncio.gather(*(executor.execute(sell) for _ in range(4)))

        assert sum(r.ok for r in results) == 1
        assert {r.reason for r in results if not r.ok} <= {
            ErrorKind.INSUFFICIENT_ASSET_BALANCE,
            ErrorKind.CONCURRENCY_CONFLICT,
        }
        wallet = await _read(engine)
        assert wallet.balance_of("BTC") == Decimal("0")
        assert wallet.balance_of(FIAT) == Decimal("1998.00")
        assert await _count(engine) == 1


# ══════════════════════════════════════════════════════════════════════
# Price sources
# ══════════════════════════════════════════════════════════════════════

COIN_IDS = {"BTC": "bitcoin", "ETH": "ethereum"}


def _coingecko(handler, max_age: float = 120.0) -> CoinGeckoPriceSource:
    client = httpx.AsyncClient(
        base_url="https://api.coingecko.test/api/v3",
        transport=httpx.MockTransport(handler),
    )
    return CoinGeckoPriceSource(
        client=client,
        coin_ids=COIN_IDS,
        usd_to_fiat_rate=Decimal("50"),
        max_age_seconds=max_age,
        clock=lambda: NOW,
    )


def _fresh(usd) -> dict:
    return {"usd": usd, "last_updated_at": int(NOW.timestamp()) - 30}


class TestCoinGeckoPriceSource:
    """Tests for CoinGeckoPriceSource."""

    @pytest.mark.asyncio
    async def test_converts_usd_quote_to_fiat(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"bitcoin": _fresh(43000.5)})

        quote = await _coingecko(handler).get_unit_price("BTC")

        assert quote.symbol == "BTC"
        assert quote.unit_price == Decimal("2150025")
        assert quote.as_of == NOW - timedelta(seconds=30)
        assert seen["path"] == "/api/v3/simple/price"
        assert seen["params"] == {
            "ids": "bitcoin",
            "vs_currencies": "usd",
            "include_last_updated_at": "true",
        }

    @pytest.mark.asyncio
    async def test_batch_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["ids"] == "bitcoin,ethereum"
            return httpx.Response(
                200, json={"bitcoin": _fresh(40000), "ethereum": _fresh(2000)}
            )

        quotes = await _coingecko(handler).get_unit_prices(["BTC", "ETH"])

        assert quotes["ETH"].unit_price == Decimal("100000")

    @pytest.mark.asyncio
    async def test_stale_quote_is_unavailable(self) -> None:
        stale = {"usd": 40000, "last_updated_at": int(NOW.timestamp()) - 600}
        source = _coingecko(lambda request: httpx.Response(200, json={"bitcoin": stale}))

        with pytest.raises(PriceUnavailableError):
            await source.get_unit_price("BTC")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "down"}),
            httpx.Response(429, json={"status": "rate limited"}),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={}),
            httpx.Response(200, json={"bitcoin": {"eur": 1}}),
            httpx.Response(200, json={"bitcoin": _fresh(0)}),
            httpx.Response(200, json={"bitcoin": _fresh("n/a")}),
            httpx.Response(200, json=[1, 2, 3]),
            httpx.Response(200, json={"bitcoin": {"usd": 60000, "last_updated_at": "yesterday"}}),
            httpx.Response(200, json={"bitcoin": {"usd": 60000, "last_updated_at": [1, 2]}}),
            httpx.Response(200, json={"bitcoin": {"usd": 60000, "last_updated_at": 10**20}}),
        ],
    )
    async def test_bad_responses_are_unavailable(self, response) -> None:
        source = _coingecko(lambda request: response)

        with pytest.raises(PriceUnavailableError):
            await source.get_unit_price("BTC")

    @pytest.mark.asyncio
    async def test_unmapped_symbol_is_unavailable_without_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(PriceUnavailableError):
            await _coingecko(handler).get_unit_price("DOGE")

    @pytest.mark.asyncio
    async def test_upstream_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(DependencyTimeoutError):
            await _coingecko(handler).get_unit_price("BTC")

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PriceUnavailableError):
            await _coingecko(handler).get_unit_price("BTC")


class TestFixedPriceSource:
    """Tests for FixedPriceSource."""

    @pytest.mark.asyncio
    async def test_serves_configured_price(self) -> None:
        quote = await FixedPriceSource({"BTC": Decimal("10")}).get_unit_price("BTC")
        assert quote.unit_price == Decimal("10")

    @pytest.mark.asyncio
    async def test_unconfigured_symbol_is_unavailable(self) -> None:
        source = FixedPriceSource({"BTC": Decimal("10")})
        source.remove_price("BTC")

        with pytest.raises(PriceUnavailableError):
            await source.get_unit_price("BTC")
