"""
Data Models
Value types passed between the pipeline stages.
"""

import base64
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ImagePayload:
    """Binary image plus its declared media type. Never mutated by the pipeline."""
    data: bytes
    mime_type: str = "image/png"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "ImagePayload":
        """Decode a ``data:<mime>;base64,<payload>`` string."""
        header, sep, payload = uri.partition(",")
        if not sep or not header.startswith("data:"):
            raise ValueError("Not a base64 data URI")
        mime_type = header[len("data:"):].split(";")[0] or "image/png"
        return cls(data=base64.b64decode(payload), mime_type=mime_type)


@dataclass(frozen=True)
class GeneratedPage:
    """One handwritten solution page."""
    image_data: str  # data URI
    page_number: int  # 1-based

    @property
    def payload(self) -> ImagePayload:
        return ImagePayload.from_data_uri(self.image_data)


@dataclass(frozen=True)
class ValidationVerdict:
    """Outcome of the validation stage."""
    valid: bool
    reason: str


class ProcessingStep(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    SOLVING = "SOLVING"
    GENERATING_PAGES = "GENERATING_PAGES"
    VALIDATING = "VALIDATING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ProcessingState:
    """Externally observable pipeline progress."""
    step: ProcessingStep = ProcessingStep.IDLE
    message: str = ""
    progress: float = 0  # 0 to 100
