"""Timestamped envelope and payload format detection.

Every persisted record is wrapped as ``{"data": <payload>, "lastModified": <ms>}``.
Values written before timestamps existed are bare payloads. Anything read
from a store, local or remote, goes through :func:`decode_payload` once and
comes out as a :class:`StoredPayload` tagged with its format, so the rest of
the code never inspects raw shapes.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, TypeVar

T = TypeVar("T")

DATA_FIELD = "data"
LAST_MODIFIED_FIELD = "lastModified"


@dataclass(frozen=True)
class Envelope(Generic[T]):
    """A payload paired with the instant it was last modified."""

    data: T
    last_modified: int

    def to_dict(self) -> Dict[str, Any]:
        return {DATA_FIELD: self.data, LAST_MODIFIED_FIELD: self.last_modified}


class PayloadFormat(str, Enum):
    ABSENT = "absent"  # nothing stored
    LEGACY = "legacy"  # bare payload, no timestamp
    ENVELOPED = "enveloped"


@dataclass(frozen=True)
class StoredPayload:
    """Normalized view of a value read from a store."""

    format: PayloadFormat
    data: Any = None
    last_modified: int = 0

    @property
    def is_absent(self) -> bool:
        return self.format is PayloadFormat.ABSENT

    @property
    def is_legacy(self) -> bool:
        return self.format is PayloadFormat.LEGACY

    @property
    def is_empty(self) -> bool:
        """True when there is no usable payload (absent, null, ``{}`` or ``[]``)."""
        if self.is_absent or self.data is None:
            return True
        if isinstance(self.data, (dict, list)):
            return len(self.data) == 0
        return False

    def effective_timestamp(self, now: int) -> int:
        """Timestamp used for last-write-wins comparison.

        Legacy values carry no timestamp and are treated as just produced.
        """
        if self.is_absent:
            return 0
        if self.is_legacy:
            return now
        return self.last_modified


def coerce_timestamp(value: Any) -> int:
    """Return ``value`` as non-negative integer milliseconds, or 0 if unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float) and math.isfinite(value) and value > 0:
        return int(value)
    return 0


def is_envelope(value: Any) -> bool:
    """Discriminator: an envelope is an object carrying both data and lastModified."""
    if isinstance(value, Envelope):
        return True
    return isinstance(value, dict) and DATA_FIELD in value and LAST_MODIFIED_FIELD in value


def decode_payload(value: Any) -> StoredPayload:
    """Classify a decoded JSON value (or Envelope) as absent, legacy or enveloped."""
    if value is None:
        return StoredPayload(PayloadFormat.ABSENT)
    if isinstance(value, Envelope):
        return StoredPayload(
            PayloadFormat.ENVELOPED, value.data, coerce_timestamp(value.last_modified)
        )
    if is_envelope(value):
        return StoredPayload(
            PayloadFormat.ENVELOPED,
            value[DATA_FIELD],
            coerce_timestamp(value[LAST_MODIFIED_FIELD]),
        )
    return StoredPayload(PayloadFormat.LEGACY, value)
