import logging
import sys


class ServerLogFilter(logging.Filter):
    """
    This filter drops hypercorn access records below the console level
    so request lines only reach the console when running in debug mode.
    """
    def __init__(self, console_level: int) -> None:
        super().__init__()
        self.console_level = console_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.endswith('.access'):
            return self.console_level <= logging.DEBUG
        return True


class MainFormatter(logging.Formatter):
    """A custom formatter for application logs and raw server access lines."""

    def __init__(self) -> None:
        super().__init__('%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s')

    def format(self, record: logging.LogRecord) -> str:
        # Access lines are already formatted by hypercorn.
        if record.name.endswith('.access'):
            return record.getMessage()
        return super().format(record)


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    This sets up the console handler, clearing any previously configured
    handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(console_level)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    console_handler.addFilter(ServerLogFilter(console_level))
    root_logger.addHandler(console_handler)
