"""
nicetable: state-management core for paginated, searchable NiceGUI tables.

This package provides:
- TableController: fetch orchestration with out-of-order response protection,
  URL / storage state sync, pagination math and column inference
- NiceGUI adapters for the browser URL, browser storage and navigation events
- Logging utilities for library and application use

For logging configuration in standalone scripts/demos:
    ```python
    from nicetable.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library, logging is handled by the parent application's configuration.
"""

import logging

from nicetable.utils.logging import configure_logging, get_logger

from nicetable.table_controller import TableConfig, TableController

# NullHandler so logs don't reach the root logger unless an application
# configured logging; configure_logging() adds a real handler.
_logger = logging.getLogger("nicetable")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "TableConfig",
    "TableController",
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
