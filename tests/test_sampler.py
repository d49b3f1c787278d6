from __future__ import annotations

import pytest

from check_traffic_rate.config import CheckConfig
from check_traffic_rate.sampler import (
    DegenerateIntervalError,
    average_rate,
    collect_samples,
    derive_rates,
    evaluate,
    format_error,
    format_summary,
    run_check,
)
from check_traffic_rate.schemas import (
    CounterDescriptor,
    CounterFamily,
    Direction,
    RateObservation,
    Sample,
    Status,
)
from check_traffic_rate.snmp_client import SnmpReadError


IN_OCTETS = "1.3.6.1.2.1.2.2.1.10.1"
HC_IN_OCTETS = "1.3.6.1.2.1.31.1.1.1.6.1"


def _samples(*pairs: tuple[int, float]) -> list[Sample]:
    return [Sample(value=v, timestamp=t) for v, t in pairs]


def test_derive_rates_bits_per_second() -> None:
    samples = _samples((100, 0.0), (200, 1.0), (300, 2.0))

    observations = derive_rates(samples, CounterFamily.LEGACY)

    assert [o.rate for o in observations] == [800.0, 800.0]


def test_derive_rates_bytes_per_second() -> None:
    samples = _samples((1000, 10.0), (1500, 12.0))

    observations = derive_rates(samples, CounterFamily.LEGACY, in_bytes=True)

    assert [o.rate for o in observations] == [250.0]
    assert observations[0].elapsed == 2.0


def test_derive_rates_newest_interval_first() -> None:
    samples = _samples((0, 0.0), (10, 1.0), (40, 2.0))

    observations = derive_rates(samples, CounterFamily.LEGACY, in_bytes=True)

    assert [o.rate for o in observations] == [30.0, 10.0]


def test_derive_rates_legacy_wrap() -> None:
    samples = _samples((4294967290, 0.0), (5, 1.0))

    observations = derive_rates(samples, CounterFamily.LEGACY, in_bytes=True)

    assert observations[0].rate == 11.0


def test_derive_rates_extended_wrap() -> None:
    samples = _samples((2**64 - 10, 0.0), (5, 1.0))

    observations = derive_rates(samples, CounterFamily.EXTENDED, in_bytes=True)

    assert observations[0].rate == 15.0


def test_derive_rates_skips_non_positive_elapsed() -> None:
    samples = _samples((100, 5.0), (200, 5.0), (300, 6.0), (400, 5.5))

    observations = derive_rates(samples, CounterFamily.LEGACY, in_bytes=True)

    assert [o.rate for o in observations] == [100.0]


def test_average_rate_is_unweighted() -> None:
    observations = [
        RateObservation(rate=100.0, elapsed=1.0),
        RateObservation(rate=300.0, elapsed=9.0),
    ]

    assert average_rate(observations) == 200.0


def test_average_rate_without_observations() -> None:
    with pytest.raises(DegenerateIntervalError):
        average_rate([])


@pytest.mark.parametrize(
    "rate, expected",
    [
        (999.9, Status.OK),
        (1000, Status.WARNING),
        (4999, Status.WARNING),
        (5000, Status.CRITICAL),
        (12345, Status.CRITICAL),
    ],
)
def test_evaluate_thresholds_are_inclusive(rate: float, expected: Status) -> None:
    assert evaluate(rate, warning=1000, critical=5000) is expected


def test_evaluate_default_thresholds_trip_on_zero() -> None:
    assert evaluate(0.0, warning=0, critical=0) is Status.CRITICAL


def test_format_summary() -> None:
    assert format_summary(Status.OK, 799.6, False, Direction.INBOUND) == "TRAFFIC_RATE OK: 800bps inbound"
    assert (
        format_summary(Status.WARNING, 1234.2, True, Direction.OUTBOUND)
        == "TRAFFIC_RATE WARNING: 1234Bps outbound"
    )


@pytest.mark.parametrize("rate, shown", [(800.5, "801"), (801.5, "802"), (800.49, "800"), (0.5, "1"), (0.0, "0")])
def test_format_summary_rounds_half_up(rate: float, shown: str) -> None:
    assert format_summary(Status.OK, rate, False, Direction.INBOUND) == f"TRAFFIC_RATE OK: {shown}bps inbound"


def test_format_error_is_single_line() -> None:
    assert format_error(Status.CRITICAL, "timeout\n  at host") == "TRAFFIC_RATE CRITICAL: timeout at host"


def test_collect_samples_reads_n_times_with_n_minus_one_sleeps(fake_session) -> None:
    session = fake_session({IN_OCTETS: [10, 20, 30, 40, 50]})
    descriptor = CounterDescriptor(family=CounterFamily.LEGACY, oid=IN_OCTETS)
    config = CheckConfig(samples=5, duration=20)
    sleeps: list[float] = []
    ticks = iter([0.0, 5.0, 10.0, 15.0, 20.0])

    samples = collect_samples(session, descriptor, config, sleep=sleeps.append, clock=lambda: next(ticks))

    assert session.calls == [IN_OCTETS] * 5
    assert sleeps == [5.0] * 4
    assert [s.value for s in samples] == [10, 20, 30, 40, 50]
    assert [s.timestamp for s in samples] == [0.0, 5.0, 10.0, 15.0, 20.0]
    assert len(derive_rates(samples, descriptor.family)) == 4


def test_collect_samples_aborts_on_read_failure(fake_session) -> None:
    failure = SnmpReadError(IN_OCTETS, "No SNMP response received before timeout")
    session = fake_session({IN_OCTETS: [10, failure, 30]})
    descriptor = CounterDescriptor(family=CounterFamily.LEGACY, oid=IN_OCTETS)
    config = CheckConfig(samples=3, duration=2)

    with pytest.raises(SnmpReadError):
        collect_samples(session, descriptor, config, sleep=lambda s: None, clock=lambda: 0.0)

    assert session.calls == [IN_OCTETS, IN_OCTETS]


def test_run_check_legacy_counters(fake_session, fake_time) -> None:
    session = fake_session({IN_OCTETS: [100, 200, 300]})
    config = CheckConfig(host="test", samples=3, duration=2, warning=1000, critical=5000)

    status, summary = run_check(session, config)

    assert status is Status.OK
    assert summary == "TRAFFIC_RATE OK: 800bps inbound"
    assert session.calls == [HC_IN_OCTETS, IN_OCTETS, IN_OCTETS, IN_OCTETS]
    assert fake_time.sleeps == [1.0, 1.0]


def test_run_check_extended_counters(fake_session, fake_time) -> None:
    # first reading answers the capability check
    session = fake_session({HC_IN_OCTETS: [0, 2**64 - 100, 900, 1900]})
    config = CheckConfig(samples=3, duration=10, in_bytes=True, warning=150, critical=5000)

    status, summary = run_check(session, config)

    # both intervals move 1000 bytes in 5s, the first one across the 64-bit wrap
    assert status is Status.WARNING
    assert summary == "TRAFFIC_RATE WARNING: 200Bps inbound"
    assert session.calls == [HC_IN_OCTETS] * 4
