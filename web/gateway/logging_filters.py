"""Logging filter for enriching log records with request context.

Adding ``RequestContextFilter`` to a handler stamps every record with the
current request id and caller id, read from the ContextVars the gateway
middleware and authentication populate. Formatters can then reference
``%(request_id)s`` and ``%(caller_id)s`` without individual log statements
passing them.
"""

from logging import Filter, LogRecord

from .middleware import CALLER_ID_CTX, REQUEST_ID_CTX


class RequestContextFilter(Filter):
    """Attach ``request_id`` and ``caller_id`` attributes to log records.

    Outside a request both default to a hyphen ("-").
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        record.caller_id = CALLER_ID_CTX.get()
        return True
