import logging
from typing import Optional


class CustomFormatter(logging.Formatter):
    """Plain INFO lines; WARNING and above get a timestamp and level."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        message = f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Args:
        verbose: DEBUG level with timestamps on every line (includes the
                 per-tick setpoint records).
        log_file: Optional extra file handler with full timestamps.
    """
    root = logging.getLogger()

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        root.setLevel(logging.INFO)
        root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
        )
        root.addHandler(file_handler)
