"""
FastAPI Web Application - Outreach HTTP Surface
================================================

Thin HTTP layer over the running engine:
- GET  /        liveness text
- GET  /qr      current pairing QR code as an image
- GET  /status  session, allow-list and reminder counters
- POST /send    send a text (or a data-URL image with caption) to a number
"""

import base64
import binascii
import io
import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

import qrcode
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..application import OutreachRuntime
from ..domain.reminders import digits_only
from ..infrastructure.config import get_settings

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:(.+?);base64,(.+)$", re.DOTALL)


class SendRequest(BaseModel):
    """Body of POST /send."""
    model_config = ConfigDict(populate_by_name=True)

    recipient: str
    message: str = ""
    media_base64: Optional[str] = Field(default=None, alias="mediaBase64")


# ══════════════════════════════════════════════════════════════════
#  PAGES
# ══════════════════════════════════════════════════════════════════

SHARED_CSS = """
    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
        background: #0a0a14;
        color: #e2e8f0;
        min-height: 100vh;
        display: flex;
        align-items: center;
        justify-content: center;
        margin: 0;
    }
    .card {
        background: rgba(255,255,255,0.035);
        border: 1px solid rgba(255,255,255,0.07);
        border-radius: 16px;
        padding: 28px;
        text-align: center;
    }
    .card img { background: #fff; padding: 12px; border-radius: 12px; }
    .muted { color: #64748b; font-size: 13px; }
"""


def render_qr_data_url(code: str) -> str:
    """Render a pairing string as a PNG data URL."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.ERROR_CORRECT_L,
        box_size=8,
        border=4,
    )
    qr.add_data(code)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def render_qr_page(data_url: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta http-equiv="refresh" content="10">
    <title>WhatsApp QR</title>
    <style>{SHARED_CSS}</style>
</head>
<body>
    <div class="card">
        <h2>Escanea este QR con WhatsApp</h2>
        <img src="{data_url}" alt="WhatsApp QR code" />
        <p class="muted">The page refreshes every 10 seconds.</p>
    </div>
</body>
</html>"""


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "error": error})


# ══════════════════════════════════════════════════════════════════
#  APP FACTORY
# ══════════════════════════════════════════════════════════════════

def create_app(runtime: Optional[OutreachRuntime] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Without `runtime` the lifespan builds one from get_settings() and starts
    it; an injected runtime is used as-is and its lifecycle is left to the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.runtime is None
        if owned:
            app.state.runtime = OutreachRuntime(get_settings())
            await app.state.runtime.start()
        try:
            yield
        finally:
            if owned:
                await app.state.runtime.stop()

    app = FastAPI(
        title="Outreach",
        description="WhatsApp Outreach & Reminder Engine",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    def _runtime(request: Request) -> OutreachRuntime:
        return request.app.state.runtime

    @app.get("/", response_class=PlainTextResponse)
    async def index():
        return "WhatsApp server running."

    @app.get("/qr", response_class=HTMLResponse)
    async def qr_page(request: Request):
        status = _runtime(request).status
        if status.ready:
            return HTMLResponse("WhatsApp session already paired.")
        if not status.qr_code:
            return HTMLResponse("No QR code available yet. Wait for it to be generated.")
        try:
            return HTMLResponse(render_qr_page(render_qr_data_url(status.qr_code)))
        except Exception as e:
            logger.exception(f"QR render error: {e}")
            return HTMLResponse("Error generating the QR code.", status_code=500)

    @app.get("/status")
    async def status(request: Request):
        rt = _runtime(request)
        return {
            "session": rt.status.state,
            "last_error": rt.status.last_error,
            "allowlist_size": rt.allowlist.size,
            "conversations": rt.states.counts(),
            "reminders": rt.database.get_stats(),
            "scheduler_running": rt.scheduler.is_running,
        }

    @app.post("/send")
    async def send(body: SendRequest, request: Request):
        gateway = _runtime(request).gateway
        number = digits_only(body.recipient)
        if not number:
            return _error(400, "Malformed recipient")

        try:
            if not await gateway.is_known_contact(number):
                return _error(400, "Recipient is not on WhatsApp")

            if body.media_base64 and body.media_base64.startswith("data:"):
                match = DATA_URL_RE.match(body.media_base64)
                if not match:
                    return _error(400, "Malformed base64 media")
                mime_type, payload = match.groups()
                try:
                    base64.b64decode(payload, validate=True)
                except (binascii.Error, ValueError):
                    return _error(400, "Malformed base64 media")
                await gateway.send_media(number, mime_type, payload, body.message)
            else:
                await gateway.send_text(number, body.message)

        except Exception as e:
            logger.exception(f"Send error: {e}")
            return _error(500, str(e))

        return {"status": "sent", "recipient": number}

    return app


app = create_app()
