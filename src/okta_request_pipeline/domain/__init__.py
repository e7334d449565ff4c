"""Domain value objects for the request pipeline."""

from .request import RETRY_COUNT_HEADER, RETRY_FOR_HEADER, Request, RequestContext

__all__ = ["RETRY_COUNT_HEADER", "RETRY_FOR_HEADER", "Request", "RequestContext"]
