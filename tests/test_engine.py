"""Tests for the execution pipeline, normalization and transport."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from es_console.document import QueryDocument
from es_console.engine import (
    ExecutionResult,
    RequestDescriptor,
    build_url,
    execute_block,
    format_result,
    normalize_block,
    normalize_body,
    print_result,
    send_request,
)
from es_console.errors import MalformedBody, QueryError
from es_console.lenient import parse_body
from es_console.parser import scan_buffer

HOST = "http://localhost:9200"


def _block(text, index=0):
    return scan_buffer(text)[index]


class TestBuildUrl:
    """Tests for URL resolution."""

    def test_relative_path_appended_to_host(self):
        assert build_url(HOST, "/index/_search") == "http://localhost:9200/index/_search"

    def test_query_string_kept(self):
        assert build_url(HOST, "/_cat/indices?v") == "http://localhost:9200/_cat/indices?v"

    def test_absolute_url_unchanged(self):
        assert build_url(HOST, "https://other:9243/_search") == "https://other:9243/_search"


class TestExecuteBlock:
    """Tests for execute_block."""

    def test_body_is_parsed_and_serialized(self):
        block = _block('GET /index/_search\n{ "query": { "match_all": {} } }')
        descriptor = execute_block(block, HOST)
        assert descriptor.method == "GET"
        assert descriptor.url == "http://localhost:9200/index/_search"
        assert json.loads(descriptor.payload) == {"query": {"match_all": {}}}
        assert descriptor.payload == json.dumps({"query": {"match_all": {}}}, indent=4)

    def test_relaxed_body_with_comments(self):
        block = _block("POST /index/_doc\n{ name: 'a', /* note */ count: 1, } // done\n")
        descriptor = execute_block(block, HOST)
        assert json.loads(descriptor.payload) == {"name": "a", "count": 1}

    def test_method_upper_cased(self):
        descriptor = execute_block(_block("delete /index\n"), HOST)
        assert descriptor.method == "DELETE"
        assert descriptor.payload is None

    def test_comment_only_body_has_no_payload(self):
        descriptor = execute_block(_block("POST /foo\n// comment only\n"), HOST)
        assert descriptor.payload is None

    def test_null_body_sends_no_payload(self):
        descriptor = execute_block(_block("POST /i/_doc\nnull\n"), HOST)
        assert descriptor.method == "POST"
        assert descriptor.payload is None

    def test_malformed_body_raises(self):
        block = _block("POST /foo\n{ query: \n")
        with pytest.raises(MalformedBody) as excinfo:
            execute_block(block, HOST)
        assert excinfo.value.block is block
        assert "POST /foo" in str(excinfo.value)
        assert isinstance(excinfo.value, QueryError)

    def test_primitive_relaxed_body_is_malformed(self):
        with pytest.raises(MalformedBody):
            execute_block(_block("POST /foo\n'text'\n"), HOST)

    def test_absolute_url_in_block(self):
        descriptor = execute_block(_block("GET http://other:9200/_cat/health\n"), HOST)
        assert descriptor.url == "http://other:9200/_cat/health"

    def test_non_ascii_payload_kept(self):
        descriptor = execute_block(_block("POST /i/_doc\n{title: 'café'}\n"), HOST)
        assert "café" in descriptor.payload


class TestRequestDescriptor:
    """Tests for the descriptor container."""

    def test_repr(self):
        r = repr(RequestDescriptor("GET", "http://h/x", None))
        assert "GET" in r
        assert "<none>" in r

    def test_equality(self):
        assert RequestDescriptor("GET", "u", "{}") == RequestDescriptor("GET", "u", "{}")
        assert RequestDescriptor("GET", "u", "{}") != RequestDescriptor("PUT", "u", "{}")


class TestNormalize:
    """Tests for body normalization."""

    def test_normalize_body(self):
        assert normalize_body("{a: 1, /* x */ b: [1,],}") == '{\n    "a": 1,\n    "b": [\n        1\n    ]\n}'

    def test_normalize_body_rejects_garbage(self):
        with pytest.raises(ValueError):
            normalize_body("{a: ")

    def test_normalize_block_rewrites_body_only(self):
        text = "GET /a\n{a: 1,}\n\nGET /b\n{b: 2}\n"
        document = QueryDocument.from_text(text)
        updated = normalize_block(document, document.block_at(0))
        assert updated == 'GET /a\n{\n    "a": 1\n}\n\nGET /b\n{b: 2}\n'
        assert [b.path.text for b in scan_buffer(updated)] == ["/a", "/b"]

    def test_normalized_body_round_trips(self):
        text = "POST /a\n{size: 0, aggs: {x: {terms: {field: 'tag'}}},}\n"
        document = QueryDocument.from_text(text)
        block = document.block_at(0)
        updated = normalize_block(document, block)
        reparsed = parse_body(scan_buffer(updated)[0].body.text)
        assert reparsed == parse_body("{size: 0, aggs: {x: {terms: {field: 'tag'}}},}")

    def test_normalize_block_without_body_is_noop(self):
        document = QueryDocument.from_text("GET /a\n")
        assert normalize_block(document, document.block_at(0)) == "GET /a\n"

    def test_normalize_block_keeps_crlf(self):
        document = QueryDocument.from_text("GET /a\r\n{a: 1,}\r\nPOST /b\r\n")
        updated = normalize_block(document, document.block_at(0))
        assert updated == 'GET /a\r\n{\r\n    "a": 1\r\n}\r\nPOST /b\r\n'
        assert "\n" not in updated.replace("\r\n", "")

    def test_normalize_block_null_body(self):
        document = QueryDocument.from_text("PUT /a\n null \n")
        assert normalize_block(document, document.block_at(0)) == "PUT /a\nnull \n"

    def test_normalize_block_malformed(self):
        document = QueryDocument.from_text("GET /a\n{a: \n")
        with pytest.raises(MalformedBody):
            normalize_block(document, document.block_at(0))


class TestSendRequest:
    """Tests for send_request."""

    def _mock_response(self, status_code, text):
        resp = MagicMock()
        resp.status_code = status_code
        resp.text = text
        resp.headers = {"Content-Type": "application/json"}
        return resp

    @patch("es_console.engine.requests.request")
    def test_sends_payload_as_json(self, mock_request):
        mock_request.return_value = self._mock_response(200, '{"hits": {}}')
        descriptor = RequestDescriptor("POST", f"{HOST}/i/_search", '{\n    "size": 0\n}')

        result = send_request(descriptor, timeout=5)

        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == f"{HOST}/i/_search"
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["data"] == b'{\n    "size": 0\n}'
        assert kwargs["timeout"] == 5
        assert kwargs["verify"] is True
        assert kwargs["proxies"] is None
        assert result.status_code == 200
        assert result.body == '{"hits": {}}'
        assert result.elapsed >= 0

    @patch("es_console.engine.requests.request")
    def test_no_payload_no_content_type(self, mock_request):
        mock_request.return_value = self._mock_response(200, "")
        send_request(RequestDescriptor("GET", f"{HOST}/_cat", None))
        kwargs = mock_request.call_args.kwargs
        assert kwargs["headers"] == {}
        assert kwargs["data"] is None

    @patch("es_console.engine.requests.request")
    def test_proxy_and_insecure(self, mock_request):
        mock_request.return_value = self._mock_response(200, "")
        send_request(
            RequestDescriptor("GET", f"{HOST}/", None),
            proxy="http://127.0.0.1:8080",
            verify=False,
        )
        kwargs = mock_request.call_args.kwargs
        assert kwargs["proxies"] == {
            "http": "http://127.0.0.1:8080",
            "https": "http://127.0.0.1:8080",
        }
        assert kwargs["verify"] is False

    @patch("es_console.engine.requests.request")
    def test_error_status_is_a_result(self, mock_request):
        mock_request.return_value = self._mock_response(404, '{"error": "index_not_found"}')
        result = send_request(RequestDescriptor("GET", f"{HOST}/missing", None))
        assert result.status_code == 404

    @patch("es_console.engine.requests.request")
    def test_connection_error_propagates(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(requests.ConnectionError):
            send_request(RequestDescriptor("GET", f"{HOST}/", None))


class TestFormatResult:
    """Tests for result rendering."""

    def _result(self, body):
        return ExecutionResult(
            status_code=200,
            headers={},
            body=body,
            elapsed=0.25,
            timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )

    def test_json_body_reindented(self):
        rendered = format_result(self._result('{"a":1}'))
        assert rendered == '// 2024-01-02T03:04:05.000Z - took 0.250 secs\n{\n    "a": 1\n}'

    def test_plain_body_verbatim(self):
        rendered = format_result(self._result("green open index"))
        assert rendered.endswith("\ngreen open index")

    def test_print_result(self, capsys):
        print_result(self._result('{"ok": true}'))
        captured = capsys.readouterr()
        assert "HTTP 200" in captured.out
        assert '"ok": true' in captured.out
