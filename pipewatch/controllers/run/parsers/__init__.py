"""Parsers for run payloads and workflow manifests."""

from pipewatch.controllers.run.parsers.compressed_nodes import (
    decode_compressed_nodes,
    encode_compressed_nodes,
)
from pipewatch.controllers.run.parsers.workflow_parser import (
    TERMINATED_MARKER,
    WorkflowParser,
)

__all__ = [
    "TERMINATED_MARKER",
    "WorkflowParser",
    "decode_compressed_nodes",
    "encode_compressed_nodes",
]
