"""Decoder for the workflow controller's compressed node side-channel.

Large workflows store ``status.nodes`` as ``status.compressedNodes``: the node
map serialized to JSON, gzipped and base64-encoded.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any

from pipewatch.models.run.errors import DecodeError


def decode_compressed_nodes(blob: str) -> dict[str, Any]:
    """Decode a compressed node map.

    Raises:
        DecodeError: If the blob is not valid base64, gzip or JSON, or does
            not decode to a mapping.
    """
    try:
        compressed = base64.b64decode(blob, validate=True)
        raw = gzip.decompress(compressed)
        nodes = json.loads(raw.decode("utf-8"))
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"Failed to decode compressedNodes: {exc}") from exc

    if not isinstance(nodes, dict):
        raise DecodeError("Failed to decode compressedNodes: expected a mapping")
    return nodes


def encode_compressed_nodes(nodes: dict[str, Any]) -> str:
    """Inverse of decode_compressed_nodes, used by fixtures and fakes."""
    raw = json.dumps(nodes).encode("utf-8")
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


__all__ = ["decode_compressed_nodes", "encode_compressed_nodes"]
