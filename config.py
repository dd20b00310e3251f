"""
MathScribe Configuration Module
Loads settings from .env file and defines pipeline constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# API Keys
# =============================================================================
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# =============================================================================
# Model Configuration (one entry per stage tier)
# =============================================================================
BASELINE_MODEL = os.getenv("BASELINE_MODEL", "gemini-2.5-flash")  # Transcribe + Validate
SOLVER_MODEL = os.getenv("SOLVER_MODEL", "gemini-3-pro-preview")
SOLVER_FALLBACK_MODEL = os.getenv("SOLVER_FALLBACK_MODEL", "gemini-2.5-flash")
WRITER_MODEL = os.getenv("WRITER_MODEL", "gemini-3-pro-image-preview")
WRITER_FALLBACK_MODEL = os.getenv("WRITER_FALLBACK_MODEL", "gemini-2.5-flash-image")

# Output token budgets for the solver (fallback tier gets the smaller one)
SOLVER_OUTPUT_BUDGET = int(os.getenv("SOLVER_OUTPUT_BUDGET", "8192"))
SOLVER_FALLBACK_OUTPUT_BUDGET = int(os.getenv("SOLVER_FALLBACK_OUTPUT_BUDGET", "4096"))

REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "180"))  # seconds per model call

# =============================================================================
# Pipeline Parameters
# =============================================================================
MAX_ATTEMPTS = 3  # Full passes through all four stages

# Progress milestones (percent)
PROGRESS_ANALYZING = 10
PROGRESS_SOLVING = 30
PROGRESS_PAGES_START = 40
PROGRESS_PAGES_SPAN = 40  # Page writing covers 40..80
PROGRESS_VALIDATING = 90
PROGRESS_COMPLETED = 100

DPI = 200  # Resolution when a problem PDF is rasterized

# =============================================================================
# Paths
# =============================================================================
BASE_DIR = Path(__file__).parent
OUTPUT_DIR = BASE_DIR / "output"
DEFAULT_PDF_NAME = "MathSolution.pdf"


# =============================================================================
# Validation
# =============================================================================
def validate_config(api_key: str = None) -> dict:
    """Validate configuration and return status."""
    issues = []

    if not (api_key or GOOGLE_API_KEY):
        issues.append("GOOGLE_API_KEY is not set in .env file")

    if MAX_ATTEMPTS < 1:
        issues.append("MAX_ATTEMPTS must be at least 1")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "config": {
            "baseline_model": BASELINE_MODEL,
            "solver_model": SOLVER_MODEL,
            "solver_fallback_model": SOLVER_FALLBACK_MODEL,
            "writer_model": WRITER_MODEL,
            "writer_fallback_model": WRITER_FALLBACK_MODEL,
            "max_attempts": MAX_ATTEMPTS,
            "dpi": DPI,
        }
    }
