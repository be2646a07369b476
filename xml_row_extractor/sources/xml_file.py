"""
Load XML content from the file system or standard input.

Content is returned as raw bytes so the parser can honour the document's own
encoding declaration.
"""

import logging
import sys

from pathlib import Path
from typing import Union

from ..exceptions import XMLParsingError


logger = logging.getLogger(__name__)

STDIN_MARKER = '-'


def load_xml_file(path: Union[str, Path]) -> bytes:
    """
    Read an XML source fully into memory.

    Args:
        path: File path, or "-" for standard input

    Returns:
        Raw XML bytes

    Raises:
        XMLParsingError: If the source cannot be read
    """
    if str(path) == STDIN_MARKER:
        logger.debug("Reading XML from standard input")
        return sys.stdin.buffer.read()

    file_path = Path(path)
    try:
        content = file_path.read_bytes()
    except OSError as e:
        logger.error(f"Could not read XML file {file_path}: {e}")
        raise XMLParsingError(f"Could not read XML file {file_path}: {e}", source_name=str(file_path)) from e

    logger.debug(f"Read {len(content)} bytes from {file_path}")
    return content
