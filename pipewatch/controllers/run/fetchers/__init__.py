"""Fetchers and collaborator contracts for the run controllers."""

from pipewatch.controllers.run.fetchers.base import (
    MetadataClient,
    ProgressSink,
    RunServiceClient,
)
from pipewatch.controllers.run.fetchers.http_client import (
    POD_NOT_FOUND_MESSAGE,
    HttpRunServiceClient,
)

__all__ = [
    "POD_NOT_FOUND_MESSAGE",
    "HttpRunServiceClient",
    "MetadataClient",
    "ProgressSink",
    "RunServiceClient",
]
