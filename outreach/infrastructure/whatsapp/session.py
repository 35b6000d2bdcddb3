"""
Session Folder Check - Browser Profile Health at Startup
=========================================================

The Chrome profile folder holds the paired WhatsApp session. A folder that
exists but cannot be written is deleted so a fresh QR pairing starts.
"""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class SessionFolderError(Exception):
    """The session folder is unusable and could not be removed."""
    pass


def ensure_session_folder(path) -> bool:
    """
    Make sure the session folder exists and is writable.

    Returns True if a broken folder was deleted (re-pairing required).
    Raises SessionFolderError if it could not be deleted.
    """
    folder = Path(path)

    try:
        if not folder.exists():
            folder.mkdir(parents=True)
            logger.info(f"Created session folder: {folder}")
            return False
        if not folder.is_dir() or not os.access(folder, os.W_OK):
            raise PermissionError(f"Session folder not writable: {folder}")
        return False
    except OSError as e:
        logger.warning(f"Session folder error ({e}). Deleting {folder}...")

    try:
        if folder.is_dir():
            shutil.rmtree(folder)
        else:
            folder.unlink()
    except OSError as e:
        logger.error(f"Could not delete session folder {folder}: {e}")
        raise SessionFolderError(f"Could not delete session folder {folder}: {e}") from e

    logger.info("Session deleted. A new QR code will be shown.")
    return True
