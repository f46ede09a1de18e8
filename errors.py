"""
errors.py — Failure Kinds
==========================
Every failure a handler can report belongs to one of three kinds.
The client gets a fixed message in the body and the kind in the
X-Error-Kind header; details stay in the log.
"""

ANALYZE_FAILED = "An error occured while analyzing the image."
PDF_FAILED     = "An error occured while generating the PDF."
MISSING_IMAGE  = "Please upload an image"
INVALID_IMAGE  = "The supplied image could not be read."
BAD_REQUEST    = "Invalid request body."

KIND_HEADER = "X-Error-Kind"


class ServiceError(Exception):
    status_code = 500
    kind        = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}

    def headers(self) -> dict:
        return {KIND_HEADER: self.kind}


class InputError(ServiceError):
    """Bad or missing client input. The client can fix it."""
    status_code = 400
    kind        = "validation"


class UpstreamError(ServiceError):
    """Gemini failed, throttled us, or returned nothing usable."""
    status_code = 502
    kind        = "upstream"


class LocalIOError(ServiceError):
    """Disk read/write, directory creation, or PDF write failure."""
    status_code = 500
    kind        = "local_io"
