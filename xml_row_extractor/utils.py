"""
Utility functions for common patterns across the XML row extractor.
"""

import re
from typing import Any, Dict, Iterable, Optional


class StringUtils:
    """Utility methods for string validation and processing."""

    # Cached regex patterns for performance
    _regex_cache = {
        'ncname': re.compile(r'^[A-Za-z_][\w.\-]*$'),
    }

    @staticmethod
    def safe_string_check(value: Any) -> bool:
        """
        Standardized string validation.

        Args:
            value: Value to check

        Returns:
            True if value is a non-empty string after stripping whitespace
        """
        return value is not None and str(value).strip() != ''

    @staticmethod
    def is_valid_prefix(value: str) -> bool:
        """Check that value can be used as an XML namespace prefix."""
        return bool(value) and StringUtils._regex_cache['ncname'].match(value) is not None


class NamespaceUtils:
    """Utility methods for namespace mappings supplied on the command line or in job files."""

    @staticmethod
    def parse_mapping(entries: Optional[Iterable[str]]) -> Optional[Dict[str, str]]:
        """
        Parse "prefix=uri" entries into a namespace mapping.

        Args:
            entries: Iterable of "prefix=uri" strings

        Returns:
            Mapping of prefix to URI, or None when no entries were given

        Raises:
            ValueError: If an entry is malformed
        """
        if not entries:
            return None

        namespaces = {}
        for entry in entries:
            prefix, sep, uri = str(entry).partition('=')
            prefix, uri = prefix.strip(), uri.strip()
            if not sep or not uri:
                raise ValueError(f"Namespace must be given as prefix=uri, got '{entry}'")
            if not StringUtils.is_valid_prefix(prefix):
                raise ValueError(f"Invalid namespace prefix '{prefix}'")
            namespaces[prefix] = uri
        return namespaces
