"""
Model Gateway Module
The single boundary between the pipeline and the generative backend.

Stages build a ``ModelRequest`` naming the task and the tier they want; the
gateway picks the concrete model for that tier, performs the call and turns
any failure into exactly one of the ``GatewayError`` variants.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import BlockedPromptException, StopCandidateException
from rich.console import Console

from config import (
    GOOGLE_API_KEY, REQUEST_TIMEOUT,
    BASELINE_MODEL, SOLVER_MODEL, SOLVER_FALLBACK_MODEL,
    WRITER_MODEL, WRITER_FALLBACK_MODEL,
    SOLVER_OUTPUT_BUDGET, SOLVER_FALLBACK_OUTPUT_BUDGET,
)
from .cost_tracker import CostTracker, extract_usage_from_response
from .errors import (
    GatewayError, GatewayAccessDenied, GatewayTransientError, GatewayMalformedResponse,
)
from .models import ImagePayload


console = Console()


class Task(str, Enum):
    TRANSCRIBE = "transcribe"
    SOLVE = "solve"
    RENDER_PAGE = "render_page"
    VALIDATE = "validate"


class Tier(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    BASELINE = "baseline"


class OutputMode(str, Enum):
    TEXT = "text"
    JSON = "json"
    IMAGE = "image"


@dataclass(frozen=True)
class ModelRequest:
    """What a stage asks of the backend."""
    task: Task
    tier: Tier
    prompt: str
    attachments: tuple[ImagePayload, ...] = ()
    output_mode: OutputMode = OutputMode.TEXT
    prompt_last: bool = True  # False puts the prompt before the attachments


@dataclass(frozen=True)
class ResponsePart:
    text: str = ""
    image: Optional[ImagePayload] = None


@dataclass
class ModelResponse:
    """Backend-neutral view of a model response."""
    parts: list[ResponsePart] = field(default_factory=list)
    model: str = ""

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if part.text)

    @property
    def images(self) -> list[ImagePayload]:
        return [part.image for part in self.parts if part.image is not None]


class ModelGateway(ABC):
    """Abstract model call capability."""

    @abstractmethod
    async def invoke(self, request: ModelRequest) -> ModelResponse:
        """Perform one call. Raises a ``GatewayError`` subclass on failure."""

    @abstractmethod
    def set_credential(self, token: str) -> None:
        """Replace the credential used for subsequent calls."""


# =============================================================================
# Tier table
# =============================================================================
@dataclass(frozen=True)
class TierSpec:
    model: str
    generation_config: dict = field(default_factory=dict)


TIER_SPECS = {
    (Task.TRANSCRIBE, Tier.BASELINE): TierSpec(BASELINE_MODEL),
    (Task.SOLVE, Tier.PRIMARY): TierSpec(
        SOLVER_MODEL, {"max_output_tokens": SOLVER_OUTPUT_BUDGET}
    ),
    (Task.SOLVE, Tier.FALLBACK): TierSpec(
        SOLVER_FALLBACK_MODEL, {"max_output_tokens": SOLVER_FALLBACK_OUTPUT_BUDGET}
    ),
    (Task.RENDER_PAGE, Tier.PRIMARY): TierSpec(WRITER_MODEL),
    (Task.RENDER_PAGE, Tier.FALLBACK): TierSpec(WRITER_FALLBACK_MODEL),
    (Task.VALIDATE, Tier.BASELINE): TierSpec(BASELINE_MODEL),
}


def resolve_tier(task: Task, tier: Tier) -> TierSpec:
    try:
        return TIER_SPECS[(task, tier)]
    except KeyError:
        raise ValueError(f"No {tier.value} tier configured for {task.value}") from None


# =============================================================================
# Error classification
# =============================================================================
_ACCESS_DENIED_PHRASES = (
    "permission_denied",
    "permission denied",
    "the caller does not have permission",
)
_HTTP_403 = re.compile(r"\b403\b")


def is_access_denied(error: BaseException) -> bool:
    """Best-effort check for an authorization denial (HTTP 403 / PERMISSION_DENIED)."""
    if isinstance(error, google_exceptions.Forbidden):
        return True

    for text in (str(error), repr(error)):
        if _HTTP_403.search(text):
            return True
        lowered = text.lower()
        if any(phrase in lowered for phrase in _ACCESS_DENIED_PHRASES):
            return True
    return False


def classify_error(error: Exception) -> GatewayError:
    """Map a backend exception onto the gateway's error variants."""
    if isinstance(error, GatewayError):
        return error

    detail = str(error) or error.__class__.__name__
    if is_access_denied(error):
        return GatewayAccessDenied(detail)
    if isinstance(error, (BlockedPromptException, StopCandidateException, ValueError)):
        return GatewayMalformedResponse(detail)
    return GatewayTransientError(detail)


async def invoke_with_fallback(
    gateway: ModelGateway,
    build_request: Callable[[Tier], ModelRequest],
    verbose: bool = True,
) -> ModelResponse:
    """
    Call the primary tier, retrying once on the fallback tier if and only if
    the primary tier was denied access.

    Args:
        gateway: Gateway to call
        build_request: Builds the request for a given tier
        verbose: Print a notice when falling back

    Returns:
        The primary response, or the fallback response after an access denial
    """
    primary = build_request(Tier.PRIMARY)
    try:
        return await gateway.invoke(primary)
    except GatewayAccessDenied as e:
        if verbose:
            console.print(
                f"  [yellow]⚠ {primary.task.value}: primary tier denied ({e.detail}), "
                f"falling back[/]"
            )
    return await gateway.invoke(build_request(Tier.FALLBACK))


# =============================================================================
# Gemini implementation
# =============================================================================
def to_model_response(response, model: str = "") -> ModelResponse:
    """Convert a google-generativeai response into a ``ModelResponse``."""
    parts = []
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                parts.append(ResponsePart(image=ImagePayload(
                    data=inline.data,
                    mime_type=inline.mime_type or "image/png",
                )))
            elif getattr(part, "text", ""):
                parts.append(ResponsePart(text=part.text))
    return ModelResponse(parts=parts, model=model)


class GeminiGateway(ModelGateway):
    """Model gateway backed by the Gemini API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        tracker: Optional[CostTracker] = None,
        request_timeout: int = REQUEST_TIMEOUT,
    ):
        self.tracker = tracker or CostTracker()
        self.request_timeout = request_timeout
        self.set_credential(api_key or GOOGLE_API_KEY)

    def set_credential(self, token: str) -> None:
        genai.configure(api_key=token)

    def _build_contents(self, request: ModelRequest) -> list:
        image_parts = [
            {"mime_type": image.mime_type, "data": image.data}
            for image in request.attachments
        ]
        if request.prompt_last:
            return image_parts + [request.prompt]
        return [request.prompt] + image_parts

    async def invoke(self, request: ModelRequest) -> ModelResponse:
        spec = resolve_tier(request.task, request.tier)
        model = genai.GenerativeModel(spec.model)

        generation_config = dict(spec.generation_config)
        if request.output_mode is OutputMode.JSON:
            generation_config["response_mime_type"] = "application/json"

        start_time = time.time()
        try:
            response = await model.generate_content_async(
                self._build_contents(request),
                generation_config=generation_config or None,
                request_options={"timeout": self.request_timeout},
            )
        except Exception as e:
            raise classify_error(e) from e
        duration_ms = (time.time() - start_time) * 1000

        input_tokens, output_tokens = extract_usage_from_response(response)
        self.tracker.add_call(
            stage=request.task.value,
            model=spec.model,
            tier=request.tier.value,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )

        return to_model_response(response, model=spec.model)
