"""
Page Writer Module
Renders one page of the solution in the user's handwriting.
"""

from .gateway import ModelGateway, ModelRequest, Task, Tier, OutputMode, invoke_with_fallback
from .interpreters import clean_text_for_handwriting, extract_image
from .models import GeneratedPage, ImagePayload


PAGE_WRITER_PROMPT_TEMPLATE = '''
Role: Expert Forger and Document Recreator.

Task: Generate a NEW image of a handwritten document.

Input Sources:
1. Reference Image: Use this ONLY to extract the paper texture (lines, color, lighting) and the handwriting style (pen stroke, slant, ink color).
2. Content to Write: The text provided below.

Strict Instructions:
- **Clarity & Contrast**: The generated handwriting MUST be sharp, clear, and highly readable.
- **Ink Quality**: Use **DARK, HIGH-CONTRAST** ink (Deep Black or Blue). Ensure high contrast against the paper.
- **Background**: Recreate the blank paper texture from the reference image.
- **Handwriting**: Mimic the exact handwriting style from the reference image.
- **NO Picture-in-Picture**: Do NOT paste the reference image into the output. The output must be a single, full-page document.
- **Layout**: Use natural vertical spacing. Fill the page appropriately.
- **Page Format**: Portrait page with a 3:4 aspect ratio (width:height).

Content to Write (This is the ONLY text that should appear):
"""
{content}
"""
'''

TIER_INSTRUCTIONS = {
    Tier.PRIMARY: " Ensure the image is high resolution (2K) and text is crisp.",
    Tier.FALLBACK: " IMPORTANT: Output a scanned document style image, not artistic. High legibility.",
}


class PageWriter:
    """Stage 3: one solution page + handwriting sample -> page image."""

    def __init__(self, gateway: ModelGateway, verbose: bool = True):
        self.gateway = gateway
        self.verbose = verbose

    def build_request(
        self,
        handwriting_sample: ImagePayload,
        content: str,
        tier: Tier,
    ) -> ModelRequest:
        prompt = PAGE_WRITER_PROMPT_TEMPLATE.format(content=content) + TIER_INSTRUCTIONS[tier]
        return ModelRequest(
            task=Task.RENDER_PAGE,
            tier=tier,
            prompt=prompt,
            attachments=(handwriting_sample,),
            output_mode=OutputMode.IMAGE,
            prompt_last=False,
        )

    async def write_page(
        self,
        handwriting_sample: ImagePayload,
        step_text: str,
        page_index: int,
    ) -> GeneratedPage:
        """
        Render a single page.

        Args:
            handwriting_sample: Style reference image
            step_text: Content of this page
            page_index: Zero-indexed position in the solution

        Returns:
            GeneratedPage numbered ``page_index + 1``
        """
        content = clean_text_for_handwriting(step_text)
        response = await invoke_with_fallback(
            self.gateway,
            lambda tier: self.build_request(handwriting_sample, content, tier),
            verbose=self.verbose,
        )
        return GeneratedPage(image_data=extract_image(response), page_number=page_index + 1)
