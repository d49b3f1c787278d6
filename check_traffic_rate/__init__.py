"""SNMP interface traffic rate check for Nagios-compatible monitoring systems."""

__version__ = "0.1.0"
