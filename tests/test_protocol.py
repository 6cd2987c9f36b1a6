"""Tests for request decoding and response encoding."""

from __future__ import annotations

import json

import pytest

from tagbridge.exceptions import MalformedRequest
from tagbridge.protocol import (
    Request,
    Response,
    decode_request,
    encode_response,
    validate_params,
)


class TestDecodeRequest:
    def test_valid_request(self) -> None:
        line = b'{"id":"1","command":"get_definition","params":{"symbol":"Foo"}}\n'
        assert decode_request(line) == Request(
            id="1", command="get_definition", params={"symbol": "Foo"}
        )

    def test_params_default_to_empty(self) -> None:
        request = decode_request('{"id":"9","command":"bogus"}')
        assert request.params == {}

    def test_unknown_command_is_not_rejected_here(self) -> None:
        request = decode_request('{"id":"3","command":"bogus","params":{}}')
        assert request.command == "bogus"

    def test_empty_prefix_allowed(self) -> None:
        request = decode_request(
            '{"id":"4","command":"list_symbols_with_prefix","params":{"prefix":""}}'
        )
        assert request.params == {"prefix": ""}

    @pytest.mark.parametrize(
        "line",
        [
            "not json at all",
            "{",
            "[1, 2, 3]",
            '"just a string"',
            '{"command":"get_definition"}',
            '{"id":"","command":"get_definition"}',
            '{"id":5,"command":"get_definition"}',
        ],
    )
    def test_rejected_without_id(self, line: str) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request(line)
        assert exc_info.value.request_id is None
        assert exc_info.value.message == "Invalid JSON request."

    def test_invalid_utf8(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request(b'{"id":"1","command":"\xff"}')
        assert "UTF-8" in (exc_info.value.details or "")

    def test_missing_command_echoes_id(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request('{"id":"7","params":{}}')
        assert exc_info.value.request_id == "7"

    def test_params_must_be_object(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request('{"id":"8","command":"get_definition","params":["Foo"]}')
        assert exc_info.value.request_id == "8"

    def test_missing_required_param(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request('{"id":"10","command":"get_references","params":{}}')
        assert exc_info.value.request_id == "10"
        assert "'symbol'" in exc_info.value.message

    def test_empty_symbol_rejected(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            decode_request('{"id":"11","command":"get_definition","params":{"symbol":""}}')
        assert "must not be empty" in exc_info.value.message

    def test_non_string_pattern_rejected(self) -> None:
        with pytest.raises(MalformedRequest):
            decode_request('{"id":"12","command":"search_pattern","params":{"pattern":42}}')


class TestEncodeResponse:
    def test_success_line(self) -> None:
        line = encode_response(Response.success("1", [{"symbol": "Foo", "line": 10}]))
        assert line == b'{"id":"1","status":"success","payload":[{"symbol":"Foo","line":10}]}\n'

    def test_error_without_details(self) -> None:
        line = encode_response(Response.failure("3", "Unknown command: bogus"))
        assert json.loads(line) == {
            "id": "3",
            "status": "error",
            "error": {"message": "Unknown command: bogus"},
        }

    def test_error_with_details_and_null_id(self) -> None:
        line = encode_response(Response.failure(None, "Invalid JSON request.", "Expecting value"))
        data = json.loads(line)
        assert data["id"] is None
        assert data["error"] == {"message": "Invalid JSON request.", "details": "Expecting value"}
        assert "payload" not in data

    def test_empty_payload_is_kept(self) -> None:
        assert json.loads(encode_response(Response.success("2", []))) == {
            "id": "2",
            "status": "success",
            "payload": [],
        }

    def test_one_line_utf8(self) -> None:
        line = encode_response(Response.success("u", [{"code": "naïve = 'a\nb'"}]))
        assert line.endswith(b"\n")
        assert line.count(b"\n") == 1
        assert "naïve" in line.decode("utf-8")


class TestValidateParams:
    def test_unknown_command_not_checked(self) -> None:
        validate_params("bogus", {})

    def test_empty_symbol_without_request_id(self) -> None:
        with pytest.raises(MalformedRequest) as exc_info:
            validate_params("get_definition", {"symbol": ""})
        assert exc_info.value.request_id is None
