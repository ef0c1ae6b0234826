"""Entry point for `python -m kubechronicle`.

Usage:
    python -m kubechronicle
"""

from __future__ import annotations

import asyncio

from kubechronicle.app import main

asyncio.run(main())
