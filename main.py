"""
Outreach - Web Server Entry Point
=================================

Run this to start the WhatsApp session, the inbound bot, the reminder job
and the HTTP surface:
    python main.py

Then open http://127.0.0.1:3000/qr in your browser to pair the session.

To run without the HTTP server:
    python run_engine.py
"""

import sys
import logging

import uvicorn

from outreach.infrastructure.config import get_settings
from outreach.infrastructure.whatsapp import SessionFolderError, ensure_session_folder

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Start the web server."""
    settings = get_settings()

    try:
        ensure_session_folder(settings.whatsapp.profile_dir)
    except SessionFolderError as e:
        logger.error(f"Cannot continue: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    print("   Outreach - WhatsApp Engine")
    print("=" * 50)
    print(f"\n   Starting server at http://{settings.web.host}:{settings.web.port}")
    print("   Press Ctrl+C to stop\n")

    # reload would relaunch the browser on every code change
    uvicorn.run(
        "outreach.web.app:app",
        host=settings.web.host,
        port=settings.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
