import itertools
import json

import fitz
import pytest

from mathscribe.gateway import ModelGateway, ModelRequest, ModelResponse, ResponsePart, Task
from mathscribe.models import ImagePayload


def text_response(text: str) -> ModelResponse:
    return ModelResponse(parts=[ResponsePart(text=text)])


def image_response(data: bytes, mime_type: str = "image/png") -> ModelResponse:
    return ModelResponse(parts=[ResponsePart(image=ImagePayload(data=data, mime_type=mime_type))])


def verdict_response(valid: bool, reason: str = "ok") -> ModelResponse:
    return text_response(json.dumps({"valid": valid, "reason": reason}))


class ScriptedGateway(ModelGateway):
    """
    Fake gateway answering from per-task scripts.

    A script is a ModelResponse, an exception instance, a callable taking the
    request, or a list of those consumed in order (the last entry repeats).
    """

    def __init__(self, **scripts):
        self.scripts = {Task(name): script for name, script in scripts.items()}
        self.calls: list[ModelRequest] = []
        self.credentials: list[str] = []

    def set_credential(self, token: str) -> None:
        self.credentials.append(token)

    def calls_for(self, task: Task) -> list[ModelRequest]:
        return [call for call in self.calls if call.task is task]

    async def invoke(self, request: ModelRequest) -> ModelResponse:
        self.calls.append(request)
        script = self.scripts[request.task]
        if isinstance(script, list):
            script = script.pop(0) if len(script) > 1 else script[0]
        outcome = script(request) if callable(script) else script
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def png_bytes(width=8, height=8):
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), False)
    pix.set_rect(pix.irect, (255, 255, 255))
    return pix.tobytes("png")


def numbered_pages():
    """Render script producing a distinct image per call."""
    counter = itertools.count(1)
    return lambda request: image_response(f"image-{next(counter)}".encode())


@pytest.fixture
def problem_image():
    return ImagePayload(data=b"problem-photo", mime_type="image/jpeg")


@pytest.fixture
def handwriting_sample():
    return ImagePayload(data=b"handwriting-photo", mime_type="image/png")


@pytest.fixture
def make_gateway():
    """Gateway where every stage succeeds unless overridden."""
    def factory(**overrides):
        scripts = {
            "transcribe": text_response("Solve x + 2 = 5"),
            "solve": text_response(json.dumps(["Step 1: x = 5 - 2", "Step 2: x = 3"])),
            "render_page": numbered_pages(),
            "validate": verdict_response(True, "legible"),
        }
        scripts.update(overrides)
        return ScriptedGateway(**scripts)
    return factory
