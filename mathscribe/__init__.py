"""
MathScribe Pipeline Package
"""

from .models import ImagePayload, GeneratedPage, ValidationVerdict, ProcessingStep, ProcessingState
from .errors import (
    PipelineError,
    AccessDeniedError,
    EmptySolutionError,
    ValidationRejectedError,
    SystemFailureError,
)
from .gateway import ModelGateway, GeminiGateway
from .progress import ProgressTracker
from .loop import HandwritingPipeline
from .ingestion import load_image
from .assembler import build_pdf, save_pdf

__all__ = [
    "ImagePayload",
    "GeneratedPage",
    "ValidationVerdict",
    "ProcessingStep",
    "ProcessingState",
    "PipelineError",
    "AccessDeniedError",
    "EmptySolutionError",
    "ValidationRejectedError",
    "SystemFailureError",
    "ModelGateway",
    "GeminiGateway",
    "ProgressTracker",
    "HandwritingPipeline",
    "load_image",
    "build_pdf",
    "save_pdf",
]
