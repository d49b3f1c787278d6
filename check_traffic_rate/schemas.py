"""
Pydantic models ("schemas") shared by the counter selector and the sampler.

All of them are frozen: a value is created once and never changed.
"""

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CounterFamily(str, Enum):
    """
    Which IF-MIB octet counter table is polled.

    - LEGACY:   ifInOctets / ifOutOctets, Counter32
    - EXTENDED: ifHCInOctets / ifHCOutOctets, Counter64
    """

    LEGACY = "legacy"
    EXTENDED = "extended"

    @property
    def bits(self) -> int:
        return 64 if self is CounterFamily.EXTENDED else 32

    @property
    def wrap(self) -> int:
        """Value added to a counter reading that wrapped past its maximum."""
        return 2 ** self.bits


class Status(IntEnum):
    """Plugin states, valued as the monitoring system's exit codes."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


class CounterDescriptor(BaseModel):
    """
    The counter chosen for a run.

    - family: legacy (32-bit) or extended (64-bit) table
    - oid:    fully-qualified identifier for the interface and direction
    """

    model_config = ConfigDict(frozen=True)

    family: CounterFamily
    oid: str


class Sample(BaseModel):
    """One counter reading and the (monotonic) time it was taken."""

    model_config = ConfigDict(frozen=True)

    value: int
    timestamp: float


class RateObservation(BaseModel):
    """Rate derived from two adjacent samples, in bits or bytes per second."""

    model_config = ConfigDict(frozen=True)

    rate: float
    elapsed: float
