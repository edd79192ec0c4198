#!/usr/bin/env python3
"""
Accrue Ledger Entry Point

Starts the FastAPI server with the configured ledger system.
"""

import sys

import uvicorn

from accrual_ledger.api import create_app
from accrual_ledger.config import get_config
from accrual_ledger.logging_config import setup_logging


def main() -> int:
    config = get_config()
    logger = setup_logging(config.log_level, "accrue", config.log_format, config.log_file)
    logger.info(f"Starting Accrue ledger on {config.api_host}:{config.api_port}")

    try:
        uvicorn.run(create_app(), host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down Accrue ledger")
    return 0


if __name__ == "__main__":
    sys.exit(main())
