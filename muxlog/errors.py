"""
muxlog: Error Taxonomy

Failures raised inside the logging path and the response recorder.
Handler exceptions are not wrapped; they propagate as-is to
PanicRecoveryMiddleware.
"""

from __future__ import annotations


class MuxlogError(Exception):
    """Base class for errors raised by muxlog itself."""


class SerializationFailure(MuxlogError, ValueError):
    """Raised when a log record cannot be rendered as a JSON line."""

    def __init__(self, record_id: str | None, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"unable to serialize log record {record_id or '<unknown>'}: {reason}")


class CapabilityUnsupported(MuxlogError, RuntimeError):
    """Raised when a handler uses a response extension the server did not advertise."""

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"underlying response sink does not support '{capability}'")
