"""
Shareable state strings.

Packs any JSON-serializable value into a URL-safe string (suitable for a
URL fragment) and back. Strings use lz-string's URI-component encoding, so
fragments made by the browser estimator load here unchanged.
"""

import json
import logging
from typing import Any, Optional

from lzstring import LZString

from rag_cost_estimator.core.calculation import UsageConfig

logger = logging.getLogger(__name__)

_lz = LZString()


def encode_state(value: Any) -> str:
    """Compress a JSON-serializable value into a URL-safe string."""
    return _lz.compressToEncodedURIComponent(json.dumps(value, separators=(",", ":")))


def decode_state(text: Optional[str]) -> Optional[Any]:
    """Recover a value produced by encode_state.
    
    Returns None for empty input or any string that does not decode.
    """
    if not text:
        return None
    
    try:
        decompressed = _lz.decompressFromEncodedURIComponent(text)
        if not decompressed:
            logger.warning("Error loading state: empty decompression result")
            return None
        return json.loads(decompressed)
    except Exception as e:
        logger.warning("Error loading state: %s", e)
        return None


def save_usage_state(config: UsageConfig) -> str:
    return encode_state(config.to_dict())


def load_usage_state(text: Optional[str]) -> Optional[UsageConfig]:
    """Restore a UsageConfig from a state string or URL fragment."""
    if text and text.startswith("#"):
        text = text[1:]
    data = decode_state(text)
    if not isinstance(data, dict):
        return None
    return UsageConfig.from_dict(data)
