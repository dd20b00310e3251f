"""
Solution Validator Module
Checks that the generated pages actually contain a legible solution.
"""

from rich.console import Console

from .errors import GatewayAccessDenied, GatewayError
from .gateway import ModelGateway, ModelRequest, Task, Tier, OutputMode
from .interpreters import BYPASS_REASON, parse_verdict
from .models import GeneratedPage, ImagePayload, ValidationVerdict


console = Console()


VALIDATION_PROMPT = """
You are a Teacher validating student work.

Inputs:
1. The FIRST image is the original MATH PROBLEM (Question).
2. The SUBSEQUENT images are the generated HANDWRITTEN SOLUTIONS.

Task: Check if the solution is present and roughly legible.

Rules:
- **IGNORE MESSINESS**: Students often have bad handwriting. This is ACCEPTABLE.
- **Check Presence**: Is there handwritten text visible on the page?
- **Check Relevance**: Does it look like math/text?

Output "valid": true unless the image is completely BLANK, BLACK, or PURE NOISE.
If it is just "messy", it is VALID.

Output JSON: { "valid": boolean, "reason": "short explanation" }
"""


class SolutionValidator:
    """
    Stage 4: problem image + generated pages -> verdict.

    Technical failures never block the user from receiving output: an
    unreadable verdict or a failed call counts as a pass. Only an access
    denial is propagated.
    """

    def __init__(self, gateway: ModelGateway, verbose: bool = True):
        self.gateway = gateway
        self.verbose = verbose

    async def validate(
        self,
        problem_image: ImagePayload,
        pages: list[GeneratedPage],
    ) -> ValidationVerdict:
        request = ModelRequest(
            task=Task.VALIDATE,
            tier=Tier.BASELINE,
            prompt=VALIDATION_PROMPT,
            attachments=(problem_image, *(page.payload for page in pages)),
            output_mode=OutputMode.JSON,
        )
        try:
            response = await self.gateway.invoke(request)
        except GatewayAccessDenied:
            raise
        except GatewayError as e:
            if self.verbose:
                console.print(f"  [yellow]⚠ Validation call failed ({e.detail}), skipping check[/]")
            return ValidationVerdict(valid=True, reason=BYPASS_REASON)

        return parse_verdict(response.text)
