"""
app.py — Plant Analyzer
========================
Upload a plant photo, get Gemini's analysis back, then turn that
analysis into a downloadable PDF report.

The client carries the analysis between the two calls; nothing is
kept server-side past a single request.

Endpoints:
- POST /analyze   — multipart field "image" → {result, image}
- POST /download  — {result, image?} → PDF attachment
- GET  /health
- GET  /          — static front-end from public/
"""

import io
import logging
from typing import Optional
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from errors import (
    ServiceError, InputError, LocalIOError,
    ANALYZE_FAILED, PDF_FAILED, MISSING_IMAGE, BAD_REQUEST,
)
from export_service import ReportComposer
from settings import Settings, load_settings
from upload_service import staged_upload
from vision_service import PlantVision

logging.basicConfig(level=logging.INFO, format="%(asctime)s [PLANT] %(levelname)s %(message)s")
log = logging.getLogger("plant")


class DownloadRequest(BaseModel):
    result: str
    image:  Optional[str] = None


def create_app(settings: Settings,
               vision: Optional[PlantVision] = None,
               composer: Optional[ReportComposer] = None) -> FastAPI:
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(title="Plant Analyzer")
    app.state.settings = settings
    app.state.vision   = vision or PlantVision(settings)
    app.state.composer = composer or ReportComposer(settings)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        log.warning(f"Rejected {request.url.path}: {exc.errors()}")
        # An "image" field that is not a file counts as no upload at all
        if request.url.path == "/analyze" and any(
                tuple(err.get("loc", ()))[:2] == ("body", "image") for err in exc.errors()):
            err = InputError(MISSING_IMAGE)
        else:
            err = InputError(BAD_REQUEST)
        return JSONResponse(status_code=err.status_code, content=err.to_dict(), headers=err.headers())

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "plant-analyzer"}

    @app.post("/analyze")
    async def analyze(request: Request, image: Optional[UploadFile] = File(None)):
        if image is None:
            raise InputError(MISSING_IMAGE)

        try:
            async with staged_upload(settings.upload_dir, image) as staged:
                analysis = await request.app.state.vision.analyze(staged)
        except ServiceError:
            raise
        except Exception as e:
            log.error(f"Error analyzing image: {e}")
            raise LocalIOError(ANALYZE_FAILED) from e

        return analysis.to_dict()

    @app.post("/download")
    async def download(req: DownloadRequest, request: Request):
        if not req.result.strip():
            raise InputError(BAD_REQUEST)

        try:
            filename, data = await request.app.state.composer.render(req.result, req.image)
        except ServiceError:
            raise
        except Exception as e:
            log.error(f"Error generating PDF: {e}")
            raise LocalIOError(PDF_FAILED) from e

        return StreamingResponse(
            io.BytesIO(data),
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename={filename}"}
        )

    # Mounted last so the API routes above take precedence
    app.mount("/", StaticFiles(directory=settings.public_dir, html=True, check_dir=False), name="public")

    return app


def main():
    import uvicorn
    settings = load_settings()
    app = create_app(settings)
    log.info(f"Server started on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
