"""
Generate trace and span identifiers for converted plans.

One trace id is drawn per plan document and one span id per plan node
(including the synthesized query span). Ids only need to be unambiguous within
a trace, so a pseudo-random source is enough; pass a seeded random.Random for
reproducible output.
"""

import random

from opentelemetry import trace
from opentelemetry.sdk.trace.id_generator import IdGenerator

TRACE_ID_BYTES = 16
SPAN_ID_BYTES = 8


class PlanIdGenerator(IdGenerator):
    """OpenTelemetry IdGenerator that also hands out raw byte ids."""

    def __init__(self, rng: random.Random | None = None):
        # random.getrandbits draws from the process-wide generator.
        self._getrandbits = rng.getrandbits if rng is not None else random.getrandbits

    def _draw(self, bits: int, invalid: int) -> int:
        value = self._getrandbits(bits)
        while value == invalid:
            value = self._getrandbits(bits)
        return value

    def generate_span_id(self) -> int:
        return self._draw(SPAN_ID_BYTES * 8, trace.INVALID_SPAN_ID)

    def generate_trace_id(self) -> int:
        return self._draw(TRACE_ID_BYTES * 8, trace.INVALID_TRACE_ID)

    def new_trace_id(self) -> bytes:
        """16-byte trace id shared by every span of one plan document."""
        return self.generate_trace_id().to_bytes(TRACE_ID_BYTES, "big")

    def new_span_id(self) -> bytes:
        """8-byte span id for one plan node."""
        return self.generate_span_id().to_bytes(SPAN_ID_BYTES, "big")
