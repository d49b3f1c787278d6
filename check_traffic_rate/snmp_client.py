"""
SNMP client abstraction.

A `SnmpSession` wraps one pysnmp engine and one UDP transport target for
the whole run. pysnmp's high-level API is asyncio based; the session owns
a private event loop and drives each request to completion, so callers
see plain blocking calls.

    with SnmpSession("192.0.2.1", "public") as session:
        session.get("1.3.6.1.2.1.2.2.1.10.1")   # {"1.3.6.1...": 123456}
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    get_cmd,
)
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

logger = logging.getLogger(__name__)


class SnmpError(Exception):
    """Raised when SNMP retrieval fails."""


class SnmpConnectionError(SnmpError):
    """Raised when the session to the agent cannot be opened."""


class SnmpReadError(SnmpError):
    """Raised when a GET for a single OID fails."""

    def __init__(self, oid: str, reason: str) -> None:
        super().__init__(f"{reason} ({oid})")
        self.oid = oid
        self.reason = reason


class SnmpNoSuchObject(SnmpReadError):
    """The agent answered, but has no value for the requested OID."""


# Exception values an SNMPv2c agent puts in a varBind instead of data
_ABSENT_VALUES = (NoSuchObject, NoSuchInstance, EndOfMibView)


class SnmpSession:
    """
    One SNMPv2c session against a single agent.

    The session must be opened before `get()` and closed exactly once;
    the context manager protocol does both.
    """

    def __init__(
        self,
        host: str,
        community: str,
        port: int = 161,
        timeout: float = 5.0,
        retries: int = 1,
    ) -> None:
        self.host = host
        self.community = community
        self.port = port
        self.timeout = timeout
        self.retries = retries

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._engine: Optional[SnmpEngine] = None
        self._target: Optional[UdpTransportTarget] = None

    def __enter__(self) -> "SnmpSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._target is not None

    def open(self) -> None:
        """Create the engine and resolve the transport target."""
        logger.debug("Opening SNMP session to %s:%s", self.host, self.port)
        self._loop = asyncio.new_event_loop()
        self._engine = SnmpEngine()
        try:
            self._target = self._loop.run_until_complete(
                UdpTransportTarget.create(
                    (self.host, self.port),
                    timeout=self.timeout,
                    retries=self.retries,
                )
            )
        except PySnmpError as exc:
            self.close()
            raise SnmpConnectionError(
                f"cannot open SNMP session to {self.host}:{self.port}: {exc}"
            ) from exc

    def close(self) -> None:
        """Shut down the dispatcher and the private loop. Safe to call twice."""
        if self._loop is None:
            return
        logger.debug("Closing SNMP session to %s:%s", self.host, self.port)
        try:
            if self._engine is not None:
                self._engine.close_dispatcher()
        finally:
            try:
                self._drain_loop()
            finally:
                self._loop.close()
            self._loop = None
            self._engine = None
            self._target = None

    def _drain_loop(self) -> None:
        """
        Let the loop finish what closing the dispatcher started: cancelled
        timer tasks and transport close callbacks only complete on a later
        loop iteration.
        """
        pending = asyncio.all_tasks(self._loop)
        for task in pending:
            task.cancel()
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self._loop.run_until_complete(asyncio.sleep(0))
        self._loop.run_until_complete(self._loop.shutdown_asyncgens())

    def get(self, oid: str) -> Dict[str, int]:
        """
        Perform an SNMPv2c GET for a single OID.

        Returns a one-entry mapping from the OID to its integer value.
        Raises `SnmpNoSuchObject` when the agent reports the object as
        absent and `SnmpReadError` for every other failure.
        """
        if not self.is_open:
            raise SnmpReadError(oid, "SNMP session is not open")

        try:
            errorIndication, errorStatus, errorIndex, varBinds = (
                self._loop.run_until_complete(
                    get_cmd(
                        self._engine,
                        CommunityData(self.community, mpModel=1),  # SNMP v2c
                        self._target,
                        ContextData(),
                        ObjectType(ObjectIdentity(oid)),
                    )
                )
            )
        except PySnmpError as exc:
            raise SnmpReadError(oid, str(exc)) from exc

        if errorIndication:
            raise SnmpReadError(oid, str(errorIndication))
        if errorStatus:
            status = errorStatus.prettyPrint()
            msg = f"{status} at {errorIndex and varBinds[int(errorIndex) - 1][0] or '?'}"
            if status == "noSuchName":
                raise SnmpNoSuchObject(oid, msg)
            raise SnmpReadError(oid, msg)

        for name, value in varBinds:
            if isinstance(value, _ABSENT_VALUES):
                raise SnmpNoSuchObject(oid, value.prettyPrint())
            try:
                number = int(value)
            except (TypeError, ValueError) as exc:
                raise SnmpReadError(oid, f"non-numeric value {value.prettyPrint()!r}") from exc
            logger.debug("GET %s = %d", oid, number)
            return {oid: number}

        raise SnmpReadError(oid, "No varBinds returned")
