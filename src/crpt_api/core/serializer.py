"""
JSON encoding of documents into request bodies.
"""

import json
import logging
from typing import Any, Mapping

from .errors import SerializationError


class JsonSerializer:
    """
    Encodes a Document (or an already wire-shaped mapping) as UTF-8 JSON.

    Any object exposing ``to_dict()`` is accepted, which covers Document and
    its nested types.
    """

    content_type = 'application/json'

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self.logger = logging.getLogger(__name__)

    def encode(self, document: Any) -> bytes:
        """
        Encode a document into a request body.

        Raises:
            SerializationError: if the document is not JSON-serializable
        """
        if not hasattr(document, 'to_dict') and not isinstance(document, Mapping):
            raise SerializationError(f"Cannot serialize object of type {type(document).__name__}")

        try:
            # to_dict raises AttributeError on a plain dict nested in products or description
            data = document.to_dict() if hasattr(document, 'to_dict') else dict(document)
            text = json.dumps(data, ensure_ascii=False, allow_nan=False)
        except (AttributeError, TypeError, ValueError) as e:
            raise SerializationError(f"Document is not JSON-serializable: {e}") from e

        self.logger.debug(f"Encoded document ({len(text)} chars)")
        return text.encode(self.encoding)
