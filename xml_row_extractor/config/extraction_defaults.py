"""
Centralized configuration defaults for row extraction.

These are operational settings shared by the CLI, the environment-driven
ConfigManager and the sinks. CLI arguments and environment variables can
override them at runtime.
"""


class ExtractionDefaults:
    """
    Centralized operational configuration for row extraction.

    All values are defaults that can be overridden via CLI arguments:
    - xml_row_extractor data.xml --rows //item --column name --log-level DEBUG
    - xml_row_extractor data.xml --rows //item --column name --batch-size 500 --table items
    """

    # Parsing
    HUGE_TREE = False  # Allow very deep / very large documents

    # Cell handling
    STRIP_WHITESPACE = False  # Cells keep their raw text content
    EMPTY_AS_ABSENT = False  # Empty text content is a present, empty cell
    ALLOW_SCALAR_RESULTS = False  # string()/count() column results are absent cells
    CELL_NOTICE_MODE = "per_cell"  # per_cell or summary
    MAX_NOTICES = 1000  # Notices kept on an extraction (0 = unlimited)

    # Sinks
    NULL_MARKER = ""  # Text written for absent cells by the CSV sink
    CSV_DELIMITER = ","
    BATCH_SIZE = 1000  # Rows per executemany batch for the database sink

    # Database connection (pyodbc)
    CONNECTION_TIMEOUT = 30  # Connection timeout in seconds
    TARGET_SCHEMA = "dbo"

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all ExtractionDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }

    @classmethod
    def log_summary(cls, logger):
        """
        Log a summary of all operational defaults.

        Args:
            logger: Logger instance receiving the summary at INFO level
        """
        config_dict = cls.to_dict()
        summary = "\n".join([f"  {key}: {value}" for key, value in sorted(config_dict.items())])
        logger.info(f"Extraction Configuration Defaults:\n{summary}")
