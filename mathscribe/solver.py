"""
Problem Solver Module
Solves the transcribed problem and splits the solution into pages.
"""

from .gateway import ModelGateway, ModelRequest, Task, Tier, OutputMode, invoke_with_fallback
from .interpreters import parse_solution_pages


SOLVER_PROMPT_TEMPLATE = """Solve the following math problem step-by-step.
Problem: {problem}

Format the output as a JSON array of strings.
CRITICAL INSTRUCTION: Each string in the array represents ONE FULL PAGE of handwritten notes.
- You MUST combine multiple logical steps into a single string to fill the page naturally, like a student writing an exam.
- Do NOT separate every small step into a new array element. One array element = One full Page.
- Each page (array element) should contain roughly 10-15 lines of text.
- Use standard single spacing.
- Write in PLAIN TEXT. Do NOT use Markdown formatting (no bold **, no headers ##).
- Use '\\n' for new lines within the string.

Example output format:
["Step 1: derivation...\\nStep 2: calculation...\\nStep 3: substitution...", "Step 4: final result..."]
"""


class ProblemSolver:
    """
    Stage 2: problem text -> ordered page contents.

    Uses the reasoning tier first and the lighter tier if access to the
    reasoning model is denied.
    """

    def __init__(self, gateway: ModelGateway, verbose: bool = True):
        self.gateway = gateway
        self.verbose = verbose

    def build_request(self, problem_text: str, tier: Tier) -> ModelRequest:
        return ModelRequest(
            task=Task.SOLVE,
            tier=tier,
            prompt=SOLVER_PROMPT_TEMPLATE.format(problem=problem_text),
            output_mode=OutputMode.JSON,
        )

    async def solve(self, problem_text: str) -> list[str]:
        response = await invoke_with_fallback(
            self.gateway,
            lambda tier: self.build_request(problem_text, tier),
            verbose=self.verbose,
        )
        return parse_solution_pages(response.text)
