"""
Counter selection.

Decides once per run which IF-MIB octet counter to poll. The agent is
checked for the 64-bit ifHC* column first; if it answers that the object
does not exist we fall back to the 32-bit column.

OIDs used (<column>.<ifIndex>):
- ifInOctets    1.3.6.1.2.1.2.2.1.10
- ifOutOctets   1.3.6.1.2.1.2.2.1.16
- ifHCInOctets  1.3.6.1.2.1.31.1.1.1.6
- ifHCOutOctets 1.3.6.1.2.1.31.1.1.1.10
"""

import logging

from check_traffic_rate.config import CheckConfig
from check_traffic_rate.schemas import CounterDescriptor, CounterFamily, Direction
from check_traffic_rate.snmp_client import SnmpNoSuchObject, SnmpSession

logger = logging.getLogger(__name__)


COUNTER_COLUMNS = {
    CounterFamily.LEGACY: {
        Direction.INBOUND: "1.3.6.1.2.1.2.2.1.10",
        Direction.OUTBOUND: "1.3.6.1.2.1.2.2.1.16",
    },
    CounterFamily.EXTENDED: {
        Direction.INBOUND: "1.3.6.1.2.1.31.1.1.1.6",
        Direction.OUTBOUND: "1.3.6.1.2.1.31.1.1.1.10",
    },
}


def counter_oid(family: CounterFamily, direction: Direction, interface: str) -> str:
    return f"{COUNTER_COLUMNS[family][direction]}.{interface}"


def select_counter(session: SnmpSession, config: CheckConfig) -> CounterDescriptor:
    """
    Check for the 64-bit counter and return the descriptor to poll.

    Only an explicit "no such object" answer selects the legacy table.
    Timeouts and other read failures propagate to the caller.
    """
    extended_oid = counter_oid(CounterFamily.EXTENDED, config.direction, config.interface)
    try:
        session.get(extended_oid)
    except SnmpNoSuchObject as exc:
        logger.info("64-bit counters unavailable (%s), using 32-bit counters", exc.reason)
        family = CounterFamily.LEGACY
    else:
        family = CounterFamily.EXTENDED

    descriptor = CounterDescriptor(
        family=family,
        oid=counter_oid(family, config.direction, config.interface),
    )
    logger.debug("Polling %s (%s, %d-bit)", descriptor.oid, family.value, family.bits)
    return descriptor
