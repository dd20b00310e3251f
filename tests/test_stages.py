import json

import pytest

from mathscribe.errors import (
    GatewayAccessDenied, GatewayMalformedResponse, GatewayTransientError, NoImageProducedError,
)
from mathscribe.gateway import OutputMode, Tier
from mathscribe.interpreters import BYPASS_REASON
from mathscribe.models import GeneratedPage, ImagePayload, ValidationVerdict
from mathscribe.solver import ProblemSolver
from mathscribe.transcriber import ProblemTranscriber, UNREADABLE_PROBLEM
from mathscribe.validator import SolutionValidator
from mathscribe.writer import PageWriter

from conftest import ScriptedGateway, image_response, text_response, verdict_response


class TestTranscriber:
    @pytest.mark.asyncio
    async def test_returns_text(self, problem_image):
        gateway = ScriptedGateway(transcribe=text_response("\\int_0^1 x dx"))
        assert await ProblemTranscriber(gateway).transcribe(problem_image) == "\\int_0^1 x dx"

        request = gateway.calls[0]
        assert request.tier is Tier.BASELINE
        assert request.attachments == (problem_image,)
        assert request.prompt_last is True

    @pytest.mark.asyncio
    async def test_empty_response(self, problem_image):
        gateway = ScriptedGateway(transcribe=text_response(""))
        assert await ProblemTranscriber(gateway).transcribe(problem_image) == UNREADABLE_PROBLEM

    @pytest.mark.asyncio
    async def test_access_denied_is_not_retried(self, problem_image):
        gateway = ScriptedGateway(transcribe=GatewayAccessDenied("403"))
        with pytest.raises(GatewayAccessDenied):
            await ProblemTranscriber(gateway).transcribe(problem_image)
        assert len(gateway.calls) == 1


class TestSolver:
    @pytest.mark.asyncio
    async def test_pages_from_json(self):
        gateway = ScriptedGateway(solve=text_response(json.dumps(["one", "two"])))
        assert await ProblemSolver(gateway).solve("x + 2 = 5") == ["one", "two"]

        request = gateway.calls[0]
        assert request.tier is Tier.PRIMARY
        assert request.output_mode is OutputMode.JSON
        assert "Problem: x + 2 = 5" in request.prompt

    @pytest.mark.asyncio
    async def test_falls_back_on_access_denied(self):
        gateway = ScriptedGateway(solve=[GatewayAccessDenied("403"), text_response('["fallback"]')])
        assert await ProblemSolver(gateway).solve("p") == ["fallback"]
        assert [c.tier for c in gateway.calls] == [Tier.PRIMARY, Tier.FALLBACK]

    @pytest.mark.asyncio
    async def test_transient_failure_propagates(self):
        gateway = ScriptedGateway(solve=GatewayTransientError("503"))
        with pytest.raises(GatewayTransientError):
            await ProblemSolver(gateway).solve("p")
        assert len(gateway.calls) == 1

    @pytest.mark.asyncio
    async def test_free_text_is_one_page(self):
        gateway = ScriptedGateway(solve=text_response("x = 3 because 5 - 2 = 3"))
        assert await ProblemSolver(gateway).solve("p") == ["x = 3 because 5 - 2 = 3"]


class TestPageWriter:
    @pytest.mark.asyncio
    async def test_page_number_and_request(self, handwriting_sample):
        gateway = ScriptedGateway(render_page=image_response(b"page-bytes"))

        page = await PageWriter(gateway).write_page(handwriting_sample, "**x = 3**", 2)

        assert page.page_number == 3
        assert page.payload.data == b"page-bytes"

        request = gateway.calls[0]
        assert request.tier is Tier.PRIMARY
        assert request.prompt_last is False
        assert request.attachments == (handwriting_sample,)
        assert '"""\nx = 3\n"""' in request.prompt
        assert request.prompt.endswith("high resolution (2K) and text is crisp.")
        assert "3:4 aspect ratio" in request.prompt

    @pytest.mark.asyncio
    async def test_fallback_tier_prompt(self, handwriting_sample):
        gateway = ScriptedGateway(render_page=[GatewayAccessDenied("403"), image_response(b"flash")])

        page = await PageWriter(gateway).write_page(handwriting_sample, "text", 0)

        assert page.payload.data == b"flash"
        fallback = gateway.calls[1]
        assert fallback.tier is Tier.FALLBACK
        assert "2K" not in fallback.prompt
        assert fallback.prompt.endswith("not artistic. High legibility.")
        assert "3:4 aspect ratio" in fallback.prompt

    @pytest.mark.asyncio
    async def test_no_image(self, handwriting_sample):
        gateway = ScriptedGateway(render_page=text_response("I can't"))
        with pytest.raises(NoImageProducedError):
            await PageWriter(gateway).write_page(handwriting_sample, "text", 0)


class TestValidator:
    @pytest.fixture
    def pages(self):
        return [
            GeneratedPage(ImagePayload(b"p1").to_data_uri(), 1),
            GeneratedPage(ImagePayload(b"p2").to_data_uri(), 2),
        ]

    @pytest.mark.asyncio
    async def test_attachments_order(self, problem_image, pages):
        gateway = ScriptedGateway(validate=verdict_response(True, "fine"))

        verdict = await SolutionValidator(gateway).validate(problem_image, pages)

        assert verdict == ValidationVerdict(True, "fine")
        request = gateway.calls[0]
        assert [a.data for a in request.attachments] == [b"problem-photo", b"p1", b"p2"]
        assert request.output_mode is OutputMode.JSON

    @pytest.mark.asyncio
    async def test_rejection(self, problem_image, pages):
        gateway = ScriptedGateway(validate=verdict_response(False, "page is black"))
        verdict = await SolutionValidator(gateway).validate(problem_image, pages)
        assert verdict == ValidationVerdict(False, "page is black")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [
        text_response("not json"),
        text_response("[" * 100000),
        GatewayTransientError("500"),
        GatewayMalformedResponse("blocked"),
    ])
    async def test_technical_failures_pass(self, problem_image, pages, outcome):
        gateway = ScriptedGateway(validate=outcome)
        verdict = await SolutionValidator(gateway).validate(problem_image, pages)
        assert verdict == ValidationVerdict(True, BYPASS_REASON)

    @pytest.mark.asyncio
    async def test_access_denied_propagates(self, problem_image, pages):
        gateway = ScriptedGateway(validate=GatewayAccessDenied("403"))
        with pytest.raises(GatewayAccessDenied):
            await SolutionValidator(gateway).validate(problem_image, pages)
