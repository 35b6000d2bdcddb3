"""
Allow-list Provider - Contactable Numbers from CSV/Excel
=========================================================

Reads a spreadsheet of customers, pulls a phone-like column out of every row
and keeps the normalized numbers as the set of contacts the bot may answer.
Supports .csv, .xlsx and .xls formats.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import FrozenSet, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

# Checked per row in this order; the first non-empty value wins
PHONE_ALIASES = ("celular", "numero", "telefono")

MIN_DIGITS = 10


def clean_phone(value: object) -> str:
    """Keep digits only: "+57 300-111-2233 " -> "573001112233"."""
    if value is None:
        return ""
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return ""
    return re.sub(r"\D", "", text)


class AllowListProvider:
    """
    Keeps the current allow-list and rebuilds it from the source file.

    Usage:
        provider = AllowListProvider("EnvioWS.csv")
        provider.reload()
        provider.contains("3001112233")

    reload() builds a new set and swaps the reference, so readers never see
    a half-built list.
    """

    def __init__(self, source_file, aliases: Sequence[str] = PHONE_ALIASES):
        self.source_file = Path(source_file)
        self.aliases = tuple(a.lower() for a in aliases)
        self._numbers: FrozenSet[str] = frozenset()
        self._last_mtime: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self._numbers)

    def contains(self, contact_id: str) -> bool:
        return contact_id in self._numbers

    def reload(self) -> int:
        """
        Rebuild the allow-list from the source file.

        Returns the number of loaded contacts. If the file cannot be read the
        previous list is kept and the error is logged.
        """
        try:
            df = self._read_frame()
        except Exception as e:
            logger.error(f"Failed to load allow-list from {self.source_file}: {e}")
            return self.size

        # Clean column names
        df.columns = [str(c).strip().lower() for c in df.columns]
        columns = [alias for alias in self.aliases if alias in df.columns]

        if not columns:
            logger.warning(
                f"No phone column found in {self.source_file}. "
                f"Expected one of: {', '.join(self.aliases)}"
            )

        numbers = set()
        for _, row in df.iterrows():
            phone = ""
            for col in columns:
                phone = clean_phone(row.get(col))
                if phone:
                    break
            if len(phone) >= MIN_DIGITS:
                numbers.add(phone)

        self._numbers = frozenset(numbers)
        logger.info(f"Allow-list loaded: {len(numbers)} numbers from {self.source_file}")
        return len(numbers)

    def _read_frame(self) -> pd.DataFrame:
        if not self.source_file.exists():
            raise FileNotFoundError(f"File not found: {self.source_file}")

        ext = self.source_file.suffix.lower()
        if ext == ".csv":
            return pd.read_csv(self.source_file, dtype=str, keep_default_na=False)
        if ext in (".xlsx", ".xls"):
            return pd.read_excel(self.source_file, dtype=str, keep_default_na=False)
        raise ValueError(f"Unsupported file format: {ext}. Use .xlsx, .xls, or .csv")

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.source_file.stat().st_mtime
        except OSError:
            return None

    def changed(self) -> bool:
        """True when the source file's mtime differs from the last check."""
        mtime = self._current_mtime()
        if mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        return True

    async def watch(self, interval: float = 5.0) -> None:
        """Reload whenever the source file changes. Runs until cancelled."""
        self._last_mtime = self._current_mtime()
        logger.info(f"Watching {self.source_file} every {interval}s")

        while True:
            await asyncio.sleep(interval)
            if self.changed():
                logger.info(f"{self.source_file} changed. Reloading allow-list...")
                await asyncio.to_thread(self.reload)
