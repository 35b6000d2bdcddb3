"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================

Synchronous driver for a single WhatsApp Web tab. Not thread-safe: the
async gateway serializes every call through one lock.
"""

import logging
import os
import time
import random
from pathlib import Path
from collections import deque
from typing import Deque, List, Optional, Set, Tuple

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    StaleElementReferenceException,
)
from webdriver_manager.chrome import ChromeDriverManager

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppBlockedError(WhatsAppClientError):
    """Raised when WhatsApp shows blocking/warning indicators."""
    pass


def parse_message_id(msg_id: str) -> Tuple[bool, str]:
    """
    Split a WhatsApp Web message id into (from_me, remote chat id).

    "false_573001112233@c.us_3EB0C4" -> (False, "573001112233@c.us")
    """
    parts = (msg_id or "").split("_")
    if len(parts) < 3 or parts[0] not in ("true", "false"):
        return False, ""
    return parts[0] == "true", parts[1]


class SeenMessageIds:
    """Remembers the most recent `limit` message ids; older ones are forgotten."""

    def __init__(self, limit: int = 5000):
        self._order: Deque[str] = deque()
        self._ids: Set[str] = set()
        self._limit = limit

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, msg_id: str) -> bool:
        return msg_id in self._ids

    def add(self, msg_id: str) -> bool:
        """Record an id. Returns False if it was already seen."""
        if msg_id in self._ids:
            return False
        self._order.append(msg_id)
        self._ids.add(msg_id)
        if len(self._order) > self._limit:
            self._ids.discard(self._order.popleft())
        return True


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.
    """

    # CSS Selectors - WhatsApp Web 2024/2025
    SELECTORS = {
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'div[contenteditable="true"][data-tab="10"]',
        "message_input_alt": 'footer div[contenteditable="true"]',
        "qr_canvas": "div[data-ref]",
        "unread_badge": 'span[aria-label*="unread message"]',
        "message_row": "div[data-id]",
        "attach_button": 'div[title="Attach"], span[data-icon="plus"], span[data-icon="attach-menu-plus"]',
        "file_input": 'input[type="file"]',
        "media_caption": 'div[contenteditable="true"][data-tab="undefined"], div[aria-label="Add a caption"]',
        "media_send": 'span[data-icon="send"], div[aria-label="Send"]',
    }

    BLOCK_INDICATORS = [
        "temporarily banned",
        "account is temporarily",
        "verify your phone",
        "unusual activity",
    ]

    INVALID_NUMBER_INDICATORS = [
        "phone number shared via url is invalid",
        "el número de teléfono compartido a través de la dirección url no es válido",
    ]

    def __init__(self, profile_dir: Path, headless: bool = False):
        self._seen_message_ids = SeenMessageIds()
        self.driver = self._create_driver(Path(profile_dir), headless)
        self._navigate_to_whatsapp()

    def _create_driver(self, profile_dir: Path, headless: bool) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if headless:
            options.add_argument("--headless=new")
            logger.warning("Running headless - scan the QR code from the /qr page")
        else:
            options.add_argument("--start-maximized")

        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")

        profile = os.path.abspath(profile_dir)
        options.add_argument(f"--user-data-dir={profile}")
        logger.info(f"Using Chrome profile at: {profile}")

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def _navigate_to_whatsapp(self) -> None:
        """Navigate to WhatsApp Web."""
        self.driver.get(WHATSAPP_WEB_URL)
        logger.info("Opened WhatsApp Web - please scan QR code if needed")

    def _random_delay(self, min_s: float = 0.5, max_s: float = 2.0) -> None:
        """Add human-like random delay."""
        time.sleep(random.uniform(min_s, max_s))

    def _page_contains(self, indicators: List[str]) -> Optional[str]:
        page_text = self.driver.page_source.lower()
        for indicator in indicators:
            if indicator in page_text:
                return indicator
        return None

    def _check_for_blocks(self) -> None:
        """Raise if the page shows blocking/warning indicators."""
        indicator = self._page_contains(self.BLOCK_INDICATORS)
        if indicator:
            logger.error(f"Block indicator detected: {indicator}")
            raise WhatsAppBlockedError(f"WhatsApp blocking detected: {indicator}")

    # ── Session ────────────────────────────────────────────────────

    def is_logged_in(self) -> bool:
        return bool(self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["search_box"]))

    def read_qr_code(self) -> Optional[str]:
        """Pairing string behind the QR canvas, or None when none is shown."""
        elements = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["qr_canvas"])
        for el in elements:
            try:
                ref = el.get_attribute("data-ref")
                if ref:
                    return ref
            except StaleElementReferenceException:
                continue
        return None

    # ── Chats ──────────────────────────────────────────────────────

    def open_chat(self, phone: str, timeout: int = 20) -> bool:
        """
        Open a chat through the click-to-chat URL.
        Returns False when WhatsApp reports the number as invalid.
        """
        self._check_for_blocks()
        logger.debug(f"Opening chat with: {phone}")

        self.driver.get(f"{WHATSAPP_WEB_URL}send?phone={phone}")
        deadline = time.time() + timeout

        while time.time() < deadline:
            if self._find_message_input():
                logger.info(f"Chat opened successfully: {phone}")
                return True
            if self._page_contains(self.INVALID_NUMBER_INDICATORS):
                logger.warning(f"Number not on WhatsApp: {phone}")
                return False
            time.sleep(1)

        logger.warning(f"Could not verify chat opened for: {phone}")
        return False

    def _find_message_input(self):
        """Find the message input box with multiple fallback selectors."""
        selectors_to_try = [
            self.SELECTORS["message_input"],
            self.SELECTORS["message_input_alt"],
            'div[title="Type a message"]',
        ]

        for selector in selectors_to_try:
            try:
                return self.driver.find_element(By.CSS_SELECTOR, selector)
            except NoSuchElementException:
                continue

        return None

    def _type_text(self, element, text: str) -> None:
        """Type text; newlines become Shift+Enter so they don't send early."""
        lines = text.split("\n")
        for index, line in enumerate(lines):
            chunk_size = 50
            for i in range(0, len(line), chunk_size):
                element.send_keys(line[i:i + chunk_size])
                self._random_delay(0.05, 0.15)
            if index < len(lines) - 1:
                element.send_keys(Keys.SHIFT, Keys.ENTER)

    def send_message(self, text: str) -> bool:
        """Send a message in the current chat."""
        try:
            self._random_delay(0.5, 1.0)

            input_box = self._find_message_input()
            if not input_box:
                logger.error("Could not find message input box")
                return False

            input_box.click()
            self._random_delay(0.3, 0.6)
            self._type_text(input_box, text)
            self._random_delay(0.3, 0.5)
            input_box.send_keys(Keys.ENTER)

            logger.info(f"Sent message: {text[:50]}...")
            return True

        except Exception as e:
            logger.exception(f"Failed to send message: {e}")
            return False

    def send_attachment(self, file_path: str, caption: str = "", timeout: int = 30) -> bool:
        """Attach a file to the current chat and send it with a caption."""
        try:
            self._random_delay(0.5, 1.0)

            attach = self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["attach_button"])
            attach.click()
            self._random_delay(0.5, 1.0)

            # Hidden inputs accept send_keys without opening the OS dialog
            file_input = self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["file_input"])
            file_input.send_keys(os.path.abspath(file_path))

            send_button = WebDriverWait(self.driver, timeout).until(
                EC.element_to_be_clickable((By.CSS_SELECTOR, self.SELECTORS["media_send"]))
            )

            if caption:
                captions = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["media_caption"])
                if captions:
                    captions[0].click()
                    self._type_text(captions[0], caption)

            self._random_delay(0.3, 0.6)
            send_button.click()

            logger.info(f"Sent attachment: {os.path.basename(file_path)}")
            return True

        except (NoSuchElementException, TimeoutException) as e:
            logger.error(f"Failed to send attachment {file_path}: {e}")
            return False

    # ── Inbound ────────────────────────────────────────────────────

    def _get_message_elements(self) -> List[Tuple[object, bool, str, str]]:
        """
        Message elements of the open chat as (element, is_incoming, msg_id, remote).
        """
        messages = []
        for el in self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["message_row"]):
            try:
                msg_id = el.get_attribute("data-id") or ""
            except StaleElementReferenceException:
                continue
            from_me, remote = parse_message_id(msg_id)
            if not remote:
                continue
            messages.append((el, not from_me, msg_id, remote))
        return messages

    def _extract_text_from_message(self, element) -> Optional[str]:
        """Extract text content from a message element."""
        text_selectors = [
            "span.selectable-text.copyable-text > span",
            "span.selectable-text.copyable-text",
            "span.selectable-text",
            'span[dir="ltr"]',
        ]

        for selector in text_selectors:
            try:
                for text_el in element.find_elements(By.CSS_SELECTOR, selector):
                    text = text_el.text.strip()
                    if text:
                        return text
            except StaleElementReferenceException:
                continue

        return None

    def read_unread_messages(self) -> List[Tuple[str, str]]:
        """
        Open every chat with an unread badge and collect its new incoming
        messages as (sender chat id, text) pairs, oldest first.
        """
        self._check_for_blocks()
        collected: List[Tuple[str, str]] = []

        badges = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["unread_badge"])
        counts: List[Tuple[object, int]] = []
        for badge in badges:
            try:
                count = int((badge.text or "1").strip() or 1)
            except ValueError:
                count = 1
            counts.append((badge, count))

        for badge, count in counts:
            try:
                badge.click()
            except StaleElementReferenceException:
                continue
            self._random_delay(0.8, 1.5)

            incoming = [m for m in self._get_message_elements() if m[1]]
            for element, _, msg_id, remote in incoming[-count:]:
                if not self._seen_message_ids.add(msg_id):
                    continue
                text = self._extract_text_from_message(element)
                if text:
                    collected.append((remote, text))

        return collected

    def close(self) -> None:
        """Close browser and cleanup."""
        try:
            self.driver.quit()
            logger.info("Browser closed")
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")
