"""Tests for mp_common.id_generator and mp_common.datetime_utils."""

from datetime import UTC, datetime

from src.mp_common.datetime_utils import current_year, utc_now
from src.mp_common.id_generator import (
    ORDER_NUMBER_MAX,
    ORDER_NUMBER_MIN,
    SnowflakeIdGenerator,
    generate_access_token,
    generate_order_number,
)


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        assert isinstance(gen.next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current


class TestOrderNumbers:
    def test_always_eight_digits(self) -> None:
        for _ in range(500):
            number = generate_order_number()
            assert len(number) == 8
            assert number.isdigit()
            assert ORDER_NUMBER_MIN <= int(number) <= ORDER_NUMBER_MAX

    def test_access_token_is_long_hex(self) -> None:
        token = generate_access_token()
        assert len(token) == 64
        int(token, 16)
        assert token != generate_access_token()


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC

    def test_current_year(self) -> None:
        assert current_year() == utc_now().year
