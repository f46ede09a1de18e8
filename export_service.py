"""
export_service.py — The Print Shop
=====================================
Turns an analysis (text + data-URI image) into a one-off PDF report.
- Centered title, generation date, analysis body
- Photo fitted into a 500x300 box, centered
- The file on disk lives only until its bytes are read back
"""

import io
import os
import re
import time
import base64
import asyncio
import binascii
import logging
import secrets
from datetime import datetime
from typing import Optional, Tuple

from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Image

from errors import InputError, LocalIOError, INVALID_IMAGE, PDF_FAILED
from settings import Settings

log = logging.getLogger("export")

REPORT_TITLE = "Plant Analysis Report"
IMAGE_BOX    = (500, 300)

DATA_URI_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")

title_style = ParagraphStyle(
    "ReportTitle",
    fontName="Helvetica-Bold",
    fontSize=24,
    leading=28,
    alignment=TA_CENTER,
    spaceAfter=4,
)
body_style = ParagraphStyle(
    "ReportBody",
    fontName="Helvetica",
    fontSize=14,
    leading=18,
    alignment=TA_LEFT,
    spaceAfter=6,
)


def decode_data_uri(image: str) -> bytes:
    """Strip a data:<type>;base64, prefix (if any) and decode the rest."""
    payload = DATA_URI_PREFIX.sub("", image.strip(), count=1)
    # Wrapped base64 (e.g. 76-column lines) is still valid input
    payload = "".join(payload.split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        log.warning(f"Rejected malformed image data-URI: {e}")
        raise InputError(INVALID_IMAGE) from e


def fit_image(image_bytes: bytes, box: Tuple[int, int] = IMAGE_BOX) -> Image:
    try:
        img_w, img_h = ImageReader(io.BytesIO(image_bytes)).getSize()
    except Exception as e:
        log.warning(f"Rejected unreadable image ({len(image_bytes)} bytes): {e}")
        raise InputError(INVALID_IMAGE) from e

    scale = min(box[0] / img_w, box[1] / img_h)
    flowable = Image(io.BytesIO(image_bytes), width=img_w * scale, height=img_h * scale)
    flowable.hAlign = "CENTER"
    return flowable


def read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_report_pdf(path: str, result: str, image_bytes: Optional[bytes], generated_at: datetime):
    # Side margins leave room for the full 500pt image box inside the frame padding
    doc = SimpleDocTemplate(
        path, pagesize=letter,
        topMargin=0.75*inch, bottomMargin=0.75*inch,
        leftMargin=0.5*inch, rightMargin=0.5*inch,
        title=REPORT_TITLE,
    )

    story = []
    story.append(Paragraph(REPORT_TITLE, title_style))
    story.append(Spacer(1, 14))
    story.append(Paragraph(f"Date Generated: {generated_at.strftime('%m/%d/%Y')}", body_style))
    story.append(Spacer(1, 14))

    for block in result.split("\n\n"):
        if block.strip():
            story.append(Paragraph(escape_text(block.strip()).replace("\n", "<br/>"), body_style))

    if image_bytes:
        story.append(Spacer(1, 14))
        story.append(fit_image(image_bytes))

    doc.build(story)


class ReportComposer:
    def __init__(self, settings: Settings):
        self.reports_dir = settings.reports_dir

    def report_filename(self) -> str:
        return f"plant_analysis_report_{int(time.time() * 1000)}_{secrets.token_hex(4)}.pdf"

    async def compose(self, result: str, image: Optional[str] = None) -> str:
        image_bytes = decode_data_uri(image) if image else None

        path = os.path.join(self.reports_dir, self.report_filename())
        try:
            os.makedirs(self.reports_dir, exist_ok=True)
            # reportlab writes synchronously; keep the event loop free until it is done
            await asyncio.to_thread(build_report_pdf, path, result, image_bytes, datetime.now())
        except Exception as e:
            if os.path.exists(path):
                os.unlink(path)
            if isinstance(e, InputError):
                raise
            log.error(f"PDF generation error: {e}")
            raise LocalIOError(PDF_FAILED) from e

        log.info(f"Report written: {path}")
        return path

    async def render(self, result: str, image: Optional[str] = None) -> Tuple[str, bytes]:
        path = await self.compose(result, image)
        try:
            data = await asyncio.to_thread(read_file, path)
        except OSError as e:
            log.error(f"Could not read back report {path}: {e}")
            raise LocalIOError(PDF_FAILED) from e
        finally:
            try:
                os.unlink(path)
            except OSError as e:
                log.warning(f"Could not remove report {path}: {e}")
        return os.path.basename(path), data
