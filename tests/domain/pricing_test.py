from __future__ import annotations

from decimal import Decimal

from domain.pricing import PriceResolver
from tests.constants import BTC, KRW, USD
from tests.helpers.stub_sources import StubOracle
from tests.helpers.time_utils import make_transaction


def test_reporting_price_is_used_directly() -> None:
    oracle = StubOracle({(USD, KRW): Decimal("1350")})
    resolver = PriceResolver(oracle)
    tx = make_transaction("buy", BTC, "1", "90000000", unit_price_usd="65000")

    resolved = resolver.resolve(tx)

    assert resolved.unit_price == Decimal("90000000")
    assert resolved.available
    assert oracle.calls == []


def test_secondary_price_is_converted_through_oracle() -> None:
    oracle = StubOracle({(USD, KRW): Decimal("1350")})
    resolver = PriceResolver(oracle, reporting_currency="krw", secondary_currency="usd")
    tx = make_transaction("buy", BTC, "1", unit_price_usd="2")

    resolved = resolver.resolve(tx)

    assert resolved.unit_price == Decimal("2700")
    assert resolved.available
    assert oracle.calls == [(Decimal("2"), USD, KRW, tx.timestamp)]


def test_missing_oracle_resolves_to_zero() -> None:
    resolver = PriceResolver()
    tx = make_transaction("buy", BTC, "1", unit_price_usd="2")

    resolved = resolver.resolve(tx)

    assert resolved.unit_price == Decimal("0")
    assert not resolved.available


def test_oracle_failure_resolves_to_zero() -> None:
    resolver = PriceResolver(StubOracle({}))
    tx = make_transaction("sell", BTC, "1", unit_price_usd="2")

    resolved = resolver.resolve(tx)

    assert resolved.unit_price == Decimal("0")
    assert not resolved.available


def test_no_price_at_all_resolves_to_zero() -> None:
    resolver = PriceResolver(StubOracle({(USD, KRW): Decimal("1350")}))

    resolved = resolver.resolve(make_transaction("reward", BTC, "0.001"))

    assert resolved.unit_price == Decimal("0")
    assert not resolved.available


def test_zero_reporting_price_counts_as_available() -> None:
    resolved = PriceResolver().resolve(make_transaction("airdrop", BTC, "5", "0"))

    assert resolved.unit_price == Decimal("0")
    assert resolved.available
