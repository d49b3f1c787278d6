from __future__ import annotations

from typing import Dict, List, Optional, Union

import pytest

from check_traffic_rate.snmp_client import SnmpConnectionError, SnmpNoSuchObject

Reading = Union[int, Exception]


class FakeSession:
    """
    In-memory stand-in for SnmpSession.

    `readings` maps an OID to the values returned by successive GETs; an
    Exception in the list is raised instead. OIDs not in the map answer
    with "no such object".
    """

    def __init__(
        self,
        readings: Optional[Dict[str, List[Reading]]] = None,
        open_error: Optional[Exception] = None,
        **kwargs: object,
    ) -> None:
        self.readings = {oid: list(values) for oid, values in (readings or {}).items()}
        self.open_error = open_error
        self.kwargs = kwargs
        self.calls: List[str] = []
        self.open_count = 0
        self.close_count = 0

    def __enter__(self) -> "FakeSession":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        self.open_count += 1
        if self.open_error is not None:
            self.close()
            raise self.open_error

    def close(self) -> None:
        self.close_count += 1

    def get(self, oid: str) -> Dict[str, int]:
        self.calls.append(oid)
        if oid not in self.readings:
            raise SnmpNoSuchObject(oid, "noSuchInstance")
        values = self.readings[oid]
        value = values.pop(0) if len(values) > 1 else values[0]
        if isinstance(value, Exception):
            raise value
        return {oid: value}


class FakeTime:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_session() -> type[FakeSession]:
    """The FakeSession class, called like SnmpSession but with canned readings."""
    return FakeSession


@pytest.fixture
def fake_time(monkeypatch: pytest.MonkeyPatch) -> FakeTime:
    clock = FakeTime()
    monkeypatch.setattr("check_traffic_rate.sampler.time.monotonic", clock.monotonic)
    monkeypatch.setattr("check_traffic_rate.sampler.time.sleep", clock.sleep)
    return clock


@pytest.fixture
def connection_refused() -> SnmpConnectionError:
    return SnmpConnectionError("cannot open SNMP session to nowhere.invalid:161: bad address")
