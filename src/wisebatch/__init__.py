from .api import passivetotal_lookup as passivetotal_lookup
from .codec import EMPTY_RESULT as EMPTY_RESULT
from .codec import LookupResult as LookupResult
from .codec import ResultCodec as ResultCodec
from .core import LookupFacade as LookupFacade
from .enums import TransportErrorPolicy as TransportErrorPolicy
from .exceptions import BulkQueryError as BulkQueryError
from .exceptions import LookupClosedError as LookupClosedError
from .settings import PassiveTotalSettings as PassiveTotalSettings
from .transport import DryRunTransport as DryRunTransport
from .transport import PassiveTotalTransport as PassiveTotalTransport

__all__ = [
    "LookupFacade",
    "LookupResult",
    "EMPTY_RESULT",
    "ResultCodec",
    "TransportErrorPolicy",
    "BulkQueryError",
    "LookupClosedError",
    "PassiveTotalSettings",
    "PassiveTotalTransport",
    "DryRunTransport",
    "passivetotal_lookup",
]
