"""Audio assembler - join segment audio into a single MP3 stream."""

import logging

from doc2audiobook.errors import AssemblyError

logger = logging.getLogger(__name__)


def assemble(buffers: list[bytes]) -> bytes:
    """Concatenate MP3 buffers back to back, in order.

    MP3 frames are self-delimiting, so no re-encoding or gap is needed.

    Raises:
        AssemblyError: If ``buffers`` is empty.
    """
    if not buffers:
        raise AssemblyError("No audio segments to assemble")

    combined = b"".join(buffers)
    logger.info("Assembled %d segments into %d bytes", len(buffers), len(combined))
    return combined
