"""
Sampling and averaging.

This module:
- polls the selected counter N times, spaced evenly over the configured time
- turns each adjacent pair of samples into a rate, correcting for wraps
- averages the rates and compares the result against the thresholds

A failed read aborts the run; nothing is retried and no partial result is
reported.
"""

import logging
import math
import time
from typing import Callable, List, Optional, Sequence, Tuple

from check_traffic_rate.config import CheckConfig
from check_traffic_rate.counters import select_counter
from check_traffic_rate.schemas import (
    CounterDescriptor,
    CounterFamily,
    Direction,
    RateObservation,
    Sample,
    Status,
)
from check_traffic_rate.snmp_client import SnmpSession

logger = logging.getLogger(__name__)

CHECK_NAME = "TRAFFIC_RATE"


class DegenerateIntervalError(ArithmeticError):
    """Raised when no sample pair has a positive elapsed time."""


def read_sample(
    session: SnmpSession,
    descriptor: CounterDescriptor,
    clock: Callable[[], float],
) -> Sample:
    """Read the counter once and timestamp the result."""
    result = session.get(descriptor.oid)
    return Sample(value=result[descriptor.oid], timestamp=clock())


def collect_samples(
    session: SnmpSession,
    descriptor: CounterDescriptor,
    config: CheckConfig,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> List[Sample]:
    """
    Take `config.samples` readings with `config.interval` seconds between
    them. The last reading is not followed by a sleep.
    """
    sleep = sleep or time.sleep
    clock = clock or time.monotonic

    samples: List[Sample] = []
    for i in range(config.samples):
        if i:
            sleep(config.interval)
        sample = read_sample(session, descriptor, clock)
        logger.debug("Sample %d/%d: %d at %.3f", i + 1, config.samples, sample.value, sample.timestamp)
        samples.append(sample)
    return samples


def derive_rates(
    samples: Sequence[Sample],
    family: CounterFamily,
    in_bytes: bool = False,
) -> List[RateObservation]:
    """
    Compute one rate per adjacent pair of samples.

    Pairs are scanned from the most recent sample backward, so the first
    observation belongs to the newest interval. A counter that went down
    is assumed to have wrapped exactly once. Pairs whose timestamps do not
    advance are skipped.
    """
    observations: List[RateObservation] = []
    for i in range(len(samples) - 1, 0, -1):
        cur, prev = samples[i], samples[i - 1]

        elapsed = cur.timestamp - prev.timestamp
        if elapsed <= 0:
            logger.warning(
                "Skipping interval %d-%d: elapsed time %.6fs is not positive", i - 1, i, elapsed
            )
            continue

        value = cur.value
        if prev.value > value:
            logger.info("Counter wrapped between samples %d and %d", i - 1, i)
            value += family.wrap

        rate = (value - prev.value) / elapsed
        if not in_bytes:
            rate *= 8
        observations.append(RateObservation(rate=rate, elapsed=elapsed))
    return observations


def average_rate(observations: Sequence[RateObservation]) -> float:
    """
    Unweighted mean of the observed rates.

    Every interval counts the same regardless of how long it actually
    lasted, so sleep jitter skews the result slightly.
    """
    if not observations:
        raise DegenerateIntervalError("no sample interval with positive elapsed time")
    return sum(o.rate for o in observations) / len(observations)


def evaluate(rate: float, warning: int, critical: int) -> Status:
    if rate >= critical:
        return Status.CRITICAL
    if rate >= warning:
        return Status.WARNING
    return Status.OK


def format_summary(status: Status, rate: float, in_bytes: bool, direction: Direction) -> str:
    unit = "Bps" if in_bytes else "bps"
    # half up, 800.5 -> 801
    return f"{CHECK_NAME} {status.name}: {math.floor(rate + 0.5)}{unit} {direction.value}"


def format_error(status: Status, detail: object) -> str:
    # keep plugin output on one line
    text = " ".join(str(detail).split())
    return f"{CHECK_NAME} {status.name}: {text}"


def run_check(session: SnmpSession, config: CheckConfig) -> Tuple[Status, str]:
    """
    Select the counter, sample it, and return the verdict with its summary.

    SNMP errors and `DegenerateIntervalError` propagate to the caller.
    """
    descriptor = select_counter(session, config)
    samples = collect_samples(session, descriptor, config)
    observations = derive_rates(samples, descriptor.family, config.in_bytes)
    rate = average_rate(observations)
    logger.info(
        "Average of %d interval(s): %.3f %s",
        len(observations),
        rate,
        "Bps" if config.in_bytes else "bps",
    )

    status = evaluate(rate, config.warning, config.critical)
    return status, format_summary(status, rate, config.in_bytes, config.direction)
