"""
crpt_api: rate-limited client for the Chestny ZNAK document API

Sends documents to the "create document" endpoint from any number of threads
while never exceeding a fixed number of requests per time window.
"""

from .core.client import ApiConfig, CrptApi, DOCUMENT_CREATE_URI
from .core.dispatcher import Dispatcher, OutcomeStatus, SubmissionOutcome
from .core.document import Description, Document, Product
from .core.errors import (
    Cancelled,
    CrptApiError,
    InvalidConfiguration,
    RemoteRejection,
    SerializationError,
    TransportError,
)
from .core.permit_pool import PermitPool
from .utils.time_units import TimeUnit

__version__ = "1.0"
__author__ = "crpt-api Project"
__description__ = "Rate-limited client for the Chestny ZNAK document API"
