"""
Problem Transcriber Module
Reads the photographed math problem into text.
"""

from .gateway import ModelGateway, ModelRequest, Task, Tier, OutputMode
from .models import ImagePayload


TRANSCRIBE_PROMPT = (
    "Transcribe the math problem in this image exactly. If it is handwritten, "
    "interpret it carefully. Output only the math problem text/LaTeX."
)

UNREADABLE_PROBLEM = "Could not read problem."


class ProblemTranscriber:
    """Stage 1: image of the problem -> problem text."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    async def transcribe(self, problem_image: ImagePayload) -> str:
        response = await self.gateway.invoke(ModelRequest(
            task=Task.TRANSCRIBE,
            tier=Tier.BASELINE,
            prompt=TRANSCRIBE_PROMPT,
            attachments=(problem_image,),
            output_mode=OutputMode.TEXT,
        ))
        return response.text or UNREADABLE_PROBLEM
