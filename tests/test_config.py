from __future__ import annotations

from datetime import datetime, timezone

from core.config import parse_datetime, parse_interval, parse_milestones, parse_pool_accounts, parse_threshold

TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
RAYDIUM_AMM = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"


def test_threshold_accepts_positive_numbers() -> None:
    assert parse_threshold("2500") == 2500.0
    assert parse_threshold(100) == 100.0


def test_threshold_rejects_missing_or_invalid() -> None:
    for raw in (None, "", "  ", "abc", "0", "-10", "nan"):
        assert parse_threshold(raw) is None


def test_milestones_are_sorted_and_deduplicated() -> None:
    assert parse_milestones("500000, 100000,abc,-1,100000, 250000") == (100000.0, 250000.0, 500000.0)
    assert parse_milestones([1_000_000, 50_000]) == (50_000.0, 1_000_000.0)
    assert parse_milestones(None) == ()


def test_invalid_pool_addresses_are_dropped() -> None:
    accounts = parse_pool_accounts(f"{RAYDIUM_AMM}, not-an-address, {TOKEN_PROGRAM}, {RAYDIUM_AMM}, 0OIl")
    assert accounts == (RAYDIUM_AMM, TOKEN_PROGRAM)


def test_parse_datetime_handles_zulu_and_invalid() -> None:
    assert parse_datetime("2025-03-01T12:00:00Z") == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert parse_datetime("not a date") is None
    assert parse_datetime("") is None
    assert parse_datetime("2025-03-01T12:00:00").tzinfo is not None


def test_interval_defaults_when_missing_and_disables_when_invalid() -> None:
    assert parse_interval(None, 60.0) == 60.0
    assert parse_interval("", 60.0) == 60.0
    assert parse_interval("15", 60.0) == 15.0
    for raw in ("soon", "0", -5, "inf", "nan", [30]):
        assert parse_interval(raw, 60.0) == 0.0
