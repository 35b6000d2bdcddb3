"""
Engine Runner - WhatsApp Bot and Reminders Without the Web Server
=================================================================

    python run_engine.py          # run until Ctrl+C
    python run_engine.py --once   # wait for the session, run one reminder tick, exit

Scan the QR code in the browser window (or set WHATSAPP_HEADLESS=false).
"""

import sys
import asyncio
import argparse
import logging

from outreach.application import OutreachRuntime
from outreach.infrastructure.config import get_settings
from outreach.infrastructure.whatsapp import SessionFolderError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run(once: bool) -> None:
    runtime = OutreachRuntime(get_settings())
    await runtime.start()

    try:
        if once:
            # Wait for the session before sending anything
            while not runtime.status.ready:
                if runtime.status.state in ("auth_failure", "disconnected"):
                    logger.error(f"Session unavailable: {runtime.status.last_error}")
                    return
                await asyncio.sleep(1)
            report = await runtime.scheduler.run_tick()
            print(f"\nReminder tick: {report}\n")
        else:
            await asyncio.Event().wait()
    finally:
        await runtime.stop()


def main():
    parser = argparse.ArgumentParser(description="Run the WhatsApp outreach engine")
    parser.add_argument("--once", action="store_true", help="run a single reminder tick and exit")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.once))
    except SessionFolderError as e:
        logger.error(f"Cannot continue: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopped")


if __name__ == "__main__":
    main()
