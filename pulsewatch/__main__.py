"""Entry point for `python -m pulsewatch`.

Usage:
    python -m pulsewatch
"""

from __future__ import annotations

import asyncio

from pulsewatch.app import main

asyncio.run(main())
