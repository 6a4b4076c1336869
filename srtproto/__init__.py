"""Secure Reliable Transport protocol logic without I/O: sequence numbers, ACK state, timers, TSBPD, timing windows and FEC."""

__version__ = "0.1.0"