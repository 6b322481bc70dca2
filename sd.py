#!/usr/bin/env python3
"""
supplyDash CLI entrypoint (sd.py)

Browse and edit supplier, inventory and wheel-motor rows in the hosted
database.

This file delegates to the supplyDash CLI layer.
"""
from supplydash.cli.sd_cli import main

if __name__ == "__main__":
    main()
