"""
Tests for the exchange domain layer.

Settlement rules, wallet arithmetic, error messages and the payment
method catalog. Pure functions only; no IO.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.domain.exchange.entities import Side, Wallet
from app.domain.exchange.errors import (
    ERROR_MESSAGES,
    BelowMinimumTradeValueError,
    ConcurrencyConflictError,
    DependencyTimeoutError,
    ErrorKind,
    InsufficientAssetBalanceError,
    InsufficientFiatBalanceError,
    InvalidAmountError,
    NegativeBalanceError,
    PriceUnavailableError,
    UnknownSymbolError,
)
from app.domain.exchange.payment_methods import (
    FeeType,
    active_payment_methods,
    calculate_fee,
    get_payment_method,
)
from app.domain.exchange.settlement import (
    balance_deltas,
    ensure_minimum_trade_value,
    ensure_sufficient_funds,
    normalize_quantity,
    normalize_symbol,
    price_trade,
    to_decimal,
)
from tests.factories import FIAT, make_wallet

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestToDecimal:
    """Tests for user-supplied number conversion."""

    @pytest.mark.parametrize("value", ["1.5", 1.5, 2, Decimal("0.001")])
    def test_accepts_numbers_and_numeric_strings(self, value) -> None:
        assert to_decimal(value) == Decimal(str(value))

    def test_float_keeps_its_printed_value(self) -> None:
        assert to_decimal(0.001) == Decimal("0.001")

    @pytest.mark.parametrize(
        "value", ["abc", "", None, True, float("nan"), float("inf"), "NaN", "-Infinity"]
    )
    def test_rejects_non_finite_and_non_numeric(self, value) -> None:
        with pytest.raises(InvalidAmountError):
            to_decimal(value)


class TestNormalizeQuantity:
    """Tests for trade quantity validation."""

    @pytest.mark.parametrize("value", [0, "0", -1, "-0.5"])
    def test_non_positive_is_invalid(self, policy, value) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_quantity(value, policy)

    def test_below_minimum_quantity_is_invalid(self, policy) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_quantity("0.00009", policy)

    def test_rounds_to_asset_precision(self, policy) -> None:
        assert normalize_quantity("0.123456789", policy) == Decimal("0.12345679")

    def test_quantity_rounding_to_zero_is_invalid(self, policy) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_quantity("0.000000001", policy)

    @pytest.mark.parametrize("value", ["1e20", Decimal("1E+30"), "123456789012345678901"])
    def test_too_many_digits_for_asset_precision_is_invalid(self, policy, value) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_quantity(value, policy)

    def test_largest_representable_quantity_is_kept(self, policy) -> None:
        value = "99999999999999999999"
        assert normalize_quantity(value, policy) == Decimal(value)


class TestNormalizeSymbol:
    """Tests for the tradability check."""

    def test_lower_case_is_canonicalized(self, policy) -> None:
        assert normalize_symbol("btc", policy) == "BTC"

    def test_unknown_symbol_rejected(self, policy) -> None:
        with pytest.raises(UnknownSymbolError):
            normalize_symbol("XRP", policy)

    def test_fiat_currency_is_not_tradable(self, policy) -> None:
        with pytest.raises(UnknownSymbolError):
            normalize_symbol(FIAT, policy)


class TestPriceTrade:
    """Tests for gross value, fee and net total computation."""

    def test_buy_adds_fee_to_gross(self, policy) -> None:
        costs = price_trade(Side.BUY, Decimal("0.001"), Decimal("2000000"), policy)
        assert costs.gross == Decimal("2000.00")
        assert costs.fee == Decimal("2.00")
        assert costs.net_total == Decimal("2002.00")

    def test_sell_deducts_fee_from_proceeds(self, policy) -> None:
        costs = price_trade(Side.SELL, Decimal("0.5"), Decimal("80000"), policy)
        assert costs.gross == Decimal("40000.00")
        assert costs.fee == Decimal("40.00")
        assert costs.net_total == Decimal("39960.00")

    def test_fee_rounds_half_up_to_fiat_precision(self, policy) -> None:
        # gross 1234.50, fee 1.2345 -> 1.23; gross 1235.00, fee 1.235 -> 1.24
        assert price_trade(Side.BUY, Decimal("24.69"), Decimal("50"), policy).fee == Decimal("1.23")
        assert price_trade(Side.BUY, Decimal("24.7"), Decimal("50"), policy).fee == Decimal("1.24")

    def test_value_is_conserved(self, policy) -> None:
        quantity, price = Decimal("0.0137"), Decimal("2150000")
        for side in Side:
            costs = price_trade(side, quantity, price, policy)
            deltas = balance_deltas(side, "BTC", quantity, costs, policy)
            fiat_delta = deltas[FIAT]
            if side is Side.BUY:
                assert -fiat_delta - costs.fee == costs.gross
            else:
                assert fiat_delta + costs.fee == costs.gross
            assert abs(costs.gross - quantity * price) <= policy.fiat_step / 2

    def test_gross_beyond_fiat_precision_is_invalid(self, policy) -> None:
        with pytest.raises(InvalidAmountError):
            price_trade(Side.BUY, Decimal("1e19"), Decimal("1e9"), policy)


class TestMinimumTradeValue:
    """Tests for the minimum gross trade value."""

    def test_below_minimum_rejected(self, policy) -> None:
        costs = price_trade(Side.BUY, Decimal("0.9"), Decimal("50"), policy)
        with pytest.raises(BelowMinimumTradeValueError):
            ensure_minimum_trade_value(costs, policy)

    def test_exact_minimum_accepted(self, policy) -> None:
        costs = price_trade(Side.BUY, Decimal("1"), Decimal("50"), policy)
        ensure_minimum_trade_value(costs, policy)


class TestSufficientFunds:
    """Tests for balance checks against a wallet snapshot."""

    def test_buy_needs_net_total_in_fiat(self, policy) -> None:
        costs = price_trade(Side.BUY, Decimal("0.001"), Decimal("2000000"), policy)
        with pytest.raises(InsufficientFiatBalanceError):
            ensure_sufficient_funds(
                make_wallet(EGP="2001.99"), Side.BUY, "BTC", Decimal("0.001"), costs, policy
            )
        ensure_sufficient_funds(
            make_wallet(EGP="2002"), Side.BUY, "BTC", Decimal("0.001"), costs, policy
        )

    def test_sell_checks_only_asset_quantity(self, policy) -> None:
        costs = price_trade(Side.SELL, Decimal("1"), Decimal("80000"), policy)
        ensure_sufficient_funds(
            make_wallet(EGP="0", ETH="1"), Side.SELL, "ETH", Decimal("1"), costs, policy
        )
        with pytest.raises(InsufficientAssetBalanceError):
            ensure_sufficient_funds(
                make_wallet(EGP="1000000", ETH="0.9"),
                Side.SELL,
                "ETH",
                Decimal("1"),
                costs,
                policy,
            )


class TestWallet:
    """Tests for the Wallet entity."""

    def test_missing_asset_has_zero_balance(self) -> None:
        assert make_wallet(EGP="10").balance_of("BTC") == Decimal("0")

    def test_with_deltas_bumps_version_and_keeps_original(self) -> None:
        wallet = make_wallet(EGP="100", version=3)
        updated = wallet.with_deltas({"EGP": Decimal("-40"), "BTC": Decimal("0.1")}, NOW)
        assert updated.version == 4
        assert updated.updated_at == NOW
        assert updated.balance_of("EGP") == Decimal("60")
        assert updated.balance_of("BTC") == Decimal("0.1")
        assert wallet.balance_of("EGP") == Decimal("100")

    def test_with_deltas_refuses_negative_balance(self) -> None:
        with pytest.raises(NegativeBalanceError):
            make_wallet(EGP="10").with_deltas({"EGP": Decimal("-10.01")}, NOW)

    def test_opened_wallet_is_all_zero(self) -> None:
        wallet = Wallet.opened("u", ["EGP", "BTC"], bonus_balance=Decimal("25"))
        assert wallet.balances == {"EGP": Decimal("0"), "BTC": Decimal("0")}
        assert wallet.bonus_balance == Decimal("25")
        assert wallet.version == 0


class TestErrors:
    """Tests for the rejection taxonomy."""

    def test_every_kind_has_a_distinct_message(self) -> None:
        assert set(ERROR_MESSAGES) == set(ErrorKind)
        assert len(set(ERROR_MESSAGES.values())) == len(ErrorKind)

    def test_kind_values_match_public_reason_names(self) -> None:
        assert ErrorKind.INSUFFICIENT_FIAT_BALANCE.value == "InsufficientFiatBalance"
        assert ErrorKind.TIMEOUT.value == "Timeout"

    @pytest.mark.parametrize(
        "error, kind",
        [
            (InvalidAmountError(0), ErrorKind.INVALID_AMOUNT),
            (UnknownSymbolError("X"), ErrorKind.UNKNOWN_SYMBOL),
            (PriceUnavailableError("BTC"), ErrorKind.PRICE_UNAVAILABLE),
            (BelowMinimumTradeValueError("1", "50"), ErrorKind.BELOW_MINIMUM_TRADE_VALUE),
            (InsufficientFiatBalanceError("2", "1"), ErrorKind.INSUFFICIENT_FIAT_BALANCE),
            (InsufficientAssetBalanceError("ETH", "2", "1"), ErrorKind.INSUFFICIENT_ASSET_BALANCE),
            (ConcurrencyConflictError("u"), ErrorKind.CONCURRENCY_CONFLICT),
            (DependencyTimeoutError("price source", 5.0), ErrorKind.TIMEOUT),
        ],
    )
    def test_rejections_carry_their_kind(self, error, kind) -> None:
        assert error.kind is kind
        assert error.user_message == ERROR_MESSAGES[kind]


class TestPaymentMethods:
    """Tests for the payment method catalog."""

    def test_catalog_lists_active_methods(self) -> None:
        ids = {m.id for m in active_payment_methods()}
        assert {"vodafone_cash", "instapay", "fawry", "credit_card"} <= ids

    def test_unknown_method_is_none(self) -> None:
        assert get_payment_method("paypal") is None

    def test_fixed_fee(self) -> None:
        method = get_payment_method("vodafone_cash")
        assert method.fee_type is FeeType.FIXED
        assert calculate_fee(Decimal("1000"), method) == Decimal("5.00")

    def test_percentage_fee(self) -> None:
        method = get_payment_method("credit_card")
        assert method.fee_type is FeeType.PERCENTAGE
        assert calculate_fee(Decimal("1000"), method) == Decimal("29.00")
