from enum import StrEnum


class TransportErrorPolicy(StrEnum):
    error = "error"
    empty = "empty"


class FlushReason(StrEnum):
    size = "size"
    interval = "interval"
    close = "close"
