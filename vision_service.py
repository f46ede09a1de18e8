"""
vision_service.py — The Plant Inspector
=========================================
Sends a staged plant photo to Gemini with a fixed prompt and
returns the plain-text analysis plus the photo as a data-URI.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
import google.generativeai as genai

from errors import LocalIOError, UpstreamError, ANALYZE_FAILED
from settings import Settings
from upload_service import StagedUpload

log = logging.getLogger("vision")

PLANT_PROMPT = (
    "Analyze this plant image and provide detailed analysis of its species, health and care "
    "recommendations, its characteristics, care instructions and interesting facts. "
    "Please provide the response in plain text without using any markdown formatting"
)


def read_staged(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


@dataclass(frozen=True)
class AnalysisResult:
    result:    str
    image:     str
    mime_type: str

    def to_dict(self) -> dict:
        return {"result": self.result, "image": self.image}


class PlantVision:
    def __init__(self, settings: Settings, model=None):
        if model is None:
            genai.configure(api_key=settings.gemini_api_key)
            model = genai.GenerativeModel(settings.gemini_model)
        self.model = model

    async def analyze(self, staged: StagedUpload) -> AnalysisResult:
        try:
            img_data = await asyncio.to_thread(read_staged, staged.path)
        except OSError as e:
            log.error(f"Could not read staged upload {staged.path}: {e}")
            raise LocalIOError(ANALYZE_FAILED) from e

        encoded = base64.b64encode(img_data).decode("ascii")

        try:
            response = await self.model.generate_content_async([
                PLANT_PROMPT,
                {"mime_type": staged.mime_type, "data": img_data},
            ])
            # .text raises ValueError when the answer was blocked
            text = (response.text or "").strip()
        except Exception as e:
            log.error(f"Gemini analysis failed: {e}")
            raise UpstreamError(ANALYZE_FAILED) from e

        if not text:
            log.error("Gemini returned an empty analysis.")
            raise UpstreamError(ANALYZE_FAILED)

        log.info(f"Analysis complete: {len(text)} chars for {staged.size} byte image")
        return AnalysisResult(
            result=text,
            image=f"data:{staged.mime_type};base64,{encoded}",
            mime_type=staged.mime_type,
        )
