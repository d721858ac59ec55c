#!/usr/bin/env python3
"""
Run One SLA Scan
================

Runs a single SLA breach pass against the configured database and prints
the counts. Meant for cron or serverless schedulers, where the in-process
APScheduler job is disabled.
"""

import asyncio
import json
from pathlib import Path

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))


async def main() -> int:
    """Run the scan and return a process exit code."""
    from src.config import settings
    from src.infrastructure.database import close_database, get_session_maker, init_database
    from src.shared.infrastructure.logging import setup_logging
    from src.shared.infrastructure.notifications import notification_hub
    from src.sla.infrastructure import run_sla_scan

    setup_logging(settings.log_level, settings.environment)
    init_database()

    try:
        # No websocket clients in this process; events are dropped
        result = await run_sla_scan(get_session_maker(), notification_hub)
    finally:
        await close_database()

    print(json.dumps(result.as_dict()))
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
