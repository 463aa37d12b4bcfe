#!/usr/bin/env python3
"""
One-off script to manually trigger a care-task reminder pass.

Usage (inside the API container):
    python scripts/run_notifications.py
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    stream=sys.stdout,
)

from app.tasks.notifications import send_task_notifications


async def main() -> None:
    print("Starting reminder pass...\n")
    await send_task_notifications(ctx={})
    print("\nReminder pass finished.")


if __name__ == "__main__":
    asyncio.run(main())
