"""Output writer for generated declaration modules."""

import logging
from pathlib import Path

from openapi_tsgen.generator.render import HEADER_END, HEADER_START

logger = logging.getLogger(__name__)


def normalize_output(text: str) -> str:
    """Strip trailing whitespace from every line; end with exactly one newline."""
    lines = [line.rstrip(" \t") for line in text.split("\n")]
    return "\n".join(lines).rstrip("\n") + "\n"


def strip_header(text: str) -> str:
    """Drop the generated header comment, if the text starts with one."""
    if not text.startswith(HEADER_START):
        return text
    end = text.find(HEADER_END)
    if end == -1:
        return text
    return text[end + len(HEADER_END):]


def write_output(output: Path, text: str) -> bool:
    """Write ``text`` to ``output`` unless the file already holds the same
    module with only a different header (timestamp, version).

    Returns True when the file was written.
    """
    text = normalize_output(text)
    if output.exists():
        existing = normalize_output(output.read_text(encoding="utf-8"))
        if strip_header(existing) == strip_header(text):
            logger.debug("%s unchanged, not rewritten", output)
            return False

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    logger.debug("wrote %s (%d bytes)", output, len(text))
    return True
