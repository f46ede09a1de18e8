import io
import os

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage

from app import create_app
from export_service import ReportComposer
from settings import Settings
from vision_service import PlantVision

PLANT_TEXT = (
    "This appears to be a Monstera deliciosa, commonly called the Swiss cheese plant. "
    "The leaves look healthy with no visible pests.\n\n"
    "Water when the top inch of soil is dry and keep it in bright indirect light."
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel; records every call."""

    def __init__(self, text=PLANT_TEXT, error=None, upload_dir=None):
        self.text = text
        self.error = error
        self.upload_dir = upload_dir
        self.calls = []
        self.staged_during_call = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if self.upload_dir:
            self.staged_during_call.append(sorted(os.listdir(self.upload_dir)))
        if self.error:
            raise self.error
        return FakeResponse(self.text)


def make_image_bytes(fmt="JPEG", size=(120, 80), color=(34, 139, 34)):
    buf = io.BytesIO()
    PILImage.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        gemini_api_key="test-key",
        upload_dir=str(tmp_path / "upload"),
        reports_dir=str(tmp_path / "reports"),
    )


@pytest.fixture
def fake_model(settings):
    return FakeModel(upload_dir=settings.upload_dir)


@pytest.fixture
def client(settings, fake_model):
    app = create_app(
        settings,
        vision=PlantVision(settings, model=fake_model),
        composer=ReportComposer(settings),
    )
    with TestClient(app) as c:
        yield c


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()
