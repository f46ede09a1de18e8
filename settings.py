"""
settings.py — Service Configuration
====================================
Reads the environment once at startup and hands the result to every
component. Handlers never call os.getenv themselves.

Env vars: PORT, GEMINI_API_KEY, GEMINI_MODEL, UPLOAD_DIR, REPORTS_DIR,
          PUBLIC_DIR, LOG_LEVEL
"""

import os
import logging
from typing import Optional
from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv

log = logging.getLogger("settings")

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    port:           int = 5000
    gemini_api_key: Optional[str] = None
    gemini_model:   str = "gemini-1.5-flash"
    upload_dir:     str = os.path.join(BASE_DIR, "upload")
    reports_dir:    str = os.path.join(BASE_DIR, "reports")
    public_dir:     str = os.path.join(BASE_DIR, "public")
    log_level:      str = "INFO"


def load_settings() -> Settings:
    load_dotenv()

    # Only pass what is set so the model defaults apply to the rest
    env = {
        "port":           os.getenv("PORT"),
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        "gemini_model":   os.getenv("GEMINI_MODEL"),
        "upload_dir":     os.getenv("UPLOAD_DIR"),
        "reports_dir":    os.getenv("REPORTS_DIR"),
        "public_dir":     os.getenv("PUBLIC_DIR"),
        "log_level":      os.getenv("LOG_LEVEL"),
    }
    settings = Settings(**{k: v for k, v in env.items() if v})

    if not settings.gemini_api_key:
        log.warning("GEMINI_API_KEY not set, image analysis will fail.")
    return settings
