# soapkit/logger.py
import logging
import sys
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def setup_logger():
    """Sets up the shared logger for the soapkit package.

    Catalog and abbreviation-store loads never raise to the form; a missing or
    unreadable med_data.xml, or an unreadable abbreviations store, shows up here
    as an ERROR.
    """
    logger = logging.getLogger("soapkit")

    # Set log level from environment variable
    log_level = os.getenv("SOAPKIT_LOG_LEVEL", "WARNING").upper()
    logger.setLevel(getattr(logging, log_level, logging.WARNING))

    # Avoid adding duplicate handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    # stderr keeps CLI JSON on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger

logger = setup_logger()
