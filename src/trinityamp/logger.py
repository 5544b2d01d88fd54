"""Console logging for the trinityamp command line."""
import logging
import sys
from logging import Logger


def setup_logging(verbose: bool = False) -> Logger:
    """Route log records to stderr; DEBUG when verbose, INFO otherwise."""
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[console_handler],
        force=True,
    )

    # pyusb is chatty at DEBUG; only surface its warnings.
    logging.getLogger("usb").setLevel(logging.WARNING)
    return logging.getLogger()
