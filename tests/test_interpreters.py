import pytest

from mathscribe.errors import NoImageProducedError
from mathscribe.gateway import ModelResponse, ResponsePart
from mathscribe.interpreters import (
    BYPASS_REASON, clean_text_for_handwriting, extract_image, parse_solution_pages,
    parse_verdict, strip_fences,
)
from mathscribe.models import ImagePayload, ValidationVerdict

from conftest import image_response, text_response


class TestSolutionPages:
    def test_plain_json_array(self):
        assert parse_solution_pages('["page 1", "page 2"]') == ["page 1", "page 2"]

    def test_fenced_json_array(self):
        text = '```json\n["Step 1: x = 3\\nStep 2: check"]\n```'
        assert parse_solution_pages(text) == ["Step 1: x = 3\nStep 2: check"]

    def test_malformed_text_becomes_single_page(self):
        assert parse_solution_pages("not json") == ["not json"]

    def test_non_list_json_keeps_raw_text(self):
        raw = '{"answer": 3}'
        assert parse_solution_pages(raw) == [raw]

    def test_empty_text_is_no_pages(self):
        assert parse_solution_pages("") == []
        assert parse_solution_pages("```json\n```") == []

    def test_non_string_items_are_serialized(self):
        assert parse_solution_pages('["a", {"b": 1}, 2]') == ["a", '{"b": 1}', "2"]

    def test_deeply_nested_text_becomes_single_page(self):
        raw = "[" * 100000
        assert parse_solution_pages(raw) == [raw]


class TestVerdict:
    def test_valid(self):
        assert parse_verdict('{"valid": true, "reason": "legible"}') == ValidationVerdict(True, "legible")

    def test_invalid_with_fences(self):
        verdict = parse_verdict('```json\n{"valid": false, "reason": "blank"}\n```')
        assert verdict == ValidationVerdict(False, "blank")

    def test_truthy_non_boolean_is_not_valid(self):
        assert parse_verdict('{"valid": "yes"}').valid is False

    def test_missing_reason(self):
        assert parse_verdict('{"valid": true}').reason == "Unknown"

    @pytest.mark.parametrize("text", ["", "definitely valid", "[true]", "{valid: true"])
    def test_unparsable_is_bypassed(self, text):
        assert parse_verdict(text) == ValidationVerdict(valid=True, reason=BYPASS_REASON)

    def test_bypass_reason_text(self):
        assert BYPASS_REASON == "validation bypassed due to system error"

    def test_deeply_nested_text_is_bypassed(self):
        assert parse_verdict("[" * 100000) == ValidationVerdict(valid=True, reason=BYPASS_REASON)


class TestExtractImage:
    def test_first_image_as_data_uri(self):
        response = ModelResponse(parts=[
            ResponsePart(text="Here is your page"),
            ResponsePart(image=ImagePayload(b"first", "image/png")),
            ResponsePart(image=ImagePayload(b"second", "image/png")),
        ])
        uri = extract_image(response)
        assert uri.startswith("data:image/png;base64,")
        assert ImagePayload.from_data_uri(uri).data == b"first"

    def test_keeps_mime_type(self):
        uri = extract_image(image_response(b"jpg-bytes", "image/jpeg"))
        assert uri.startswith("data:image/jpeg;base64,")

    def test_no_image(self):
        with pytest.raises(NoImageProducedError, match="No image generated"):
            extract_image(text_response("sorry"))


class TestCleanText:
    def test_strips_markdown(self):
        text = "## Step 1\n**Bold** and *italic* with `code` [x]"
        assert clean_text_for_handwriting(text) == "Step 1\nBold and italic with code x"

    def test_heading_levels(self):
        assert clean_text_for_handwriting("###### Deep") == "Deep"
        assert clean_text_for_handwriting("#Tight") == "Tight"

    def test_keeps_math(self):
        assert clean_text_for_handwriting("  x^2 + 3 = (y - 1)/2  ") == "x^2 + 3 = (y - 1)/2"


def test_strip_fences():
    assert strip_fences("```json\n[1]\n```") == "[1]"
    assert strip_fences("```\n{}\n```") == "{}"
