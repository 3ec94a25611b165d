#!/usr/bin/env python3
"""
Deposito Ledger Entry Point

Starts the FastAPI server on the configured host and port (8090 by default).
"""

import sys

from deposito_ledger.api import run_server
from deposito_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Deposito Ledger...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Deposito Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
