"""
Tests for JSON recovery from model output.
"""

import json

import pytest

from catto.core.exceptions import ResponseParseError
from catto.core.schemas import CaseInput, PreAnalysis
from catto.parsing import ParseFailure, Parsed, extract_json, parse_model_response


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_object_wrapped_in_fences_and_commentary(self):
        text = 'Here is the result:\n```json\n{"a": {"b": [1, 2]}}\n```\nHope this helps.'
        assert extract_json(text) == {"a": {"b": [1, 2]}}

    def test_no_braces_raises(self):
        with pytest.raises(ResponseParseError) as exc:
            extract_json("I could not find anything relevant.")
        assert exc.value.excerpt.startswith("I could not")

    def test_none_raises(self):
        with pytest.raises(ResponseParseError):
            extract_json(None)

    def test_invalid_json_raises(self):
        with pytest.raises(ResponseParseError):
            extract_json('{"a": 1,}')

    def test_two_objects_are_not_merged(self):
        # First "{" to last "}" spans both objects, which is not valid JSON
        with pytest.raises(ResponseParseError):
            extract_json('{"a": 1} and {"b": 2}')

    def test_excerpt_is_truncated(self):
        with pytest.raises(ResponseParseError) as exc:
            extract_json("x" * 1000)
        assert len(exc.value.excerpt) == 200


class TestParseModelResponse:
    def test_parsed_branch(self, pre_analysis_payload):
        result = parse_model_response(json.dumps(pre_analysis_payload), PreAnalysis)

        assert isinstance(result, Parsed)
        assert len(result.value.query_blocks) == 2
        assert result.value.search_core.mandatory == "Airway fire"

    def test_failure_branch_for_garbage(self):
        result = parse_model_response("no json here", PreAnalysis)

        assert isinstance(result, ParseFailure)
        assert "No JSON object" in result.reason
        assert isinstance(result.to_error(), ResponseParseError)

    def test_failure_branch_for_schema_mismatch(self):
        result = parse_model_response('{"anatomy": "Trachea"}', CaseInput)

        assert isinstance(result, ParseFailure)
        assert "CaseInput" in result.reason
