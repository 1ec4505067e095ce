"""
Test 12: Factories (factory.py)

Tests the factory functions and ServerRequest construction from a server
environment snapshot.
"""

import pytest

from plume import (
    URI,
    InvalidArgumentFault,
    InvalidHeaderFault,
    Request,
    Response,
    ServerRequest,
    Stream,
    StreamFault,
    UploadedFile,
    create_request,
    create_response,
    create_server_request,
    create_stream,
    create_stream_from_file,
    create_stream_from_resource,
    create_uploaded_file,
    create_uri,
    server_request_from_globals,
)
from plume.factory import headers_from_server, uri_from_server


# ============================================================================
# Factory functions
# ============================================================================

class TestFactories:

    def test_create_request(self):
        request = create_request("post", "https://example.com/items")
        assert isinstance(request, Request)
        assert request.method == "POST"
        assert request.uri.path == "/items"

    def test_create_request_with_uri(self):
        uri = URI.parse("https://example.com/")
        assert create_request("GET", uri).uri is uri

    def test_create_response(self):
        response = create_response(404)
        assert isinstance(response, Response)
        assert response.reason_phrase == "Not Found"

    def test_create_server_request_takes_params_as_given(self):
        request = create_server_request("GET", "/", {"REQUEST_METHOD": "POST"})
        assert isinstance(request, ServerRequest)
        assert request.method == "GET"
        assert request.server_params["REQUEST_METHOD"] == "POST"

    def test_create_stream(self):
        assert bytes(create_stream(b"data")) == b"data"
        assert create_stream().get_size() == 0

    def test_create_stream_from_file(self, tmp_path):
        path = tmp_path / "f.bin"
        path.write_bytes(b"file")
        with create_stream_from_file(str(path), "rb") as stream:
            assert stream.read(4) == b"file"

    @pytest.mark.parametrize("mode", ["", "q", "rw", "r++", 1])
    def test_create_stream_from_file_bad_mode(self, tmp_path, mode):
        with pytest.raises(InvalidArgumentFault):
            create_stream_from_file(str(tmp_path / "f.bin"), mode)

    def test_create_stream_from_file_missing(self, tmp_path):
        with pytest.raises(StreamFault):
            create_stream_from_file(str(tmp_path / "missing.bin"))

    def test_create_stream_from_resource(self, tmp_path):
        path = tmp_path / "r.bin"
        path.write_bytes(b"abc")
        handle = open(path, "rb")
        with create_stream_from_resource(handle) as stream:
            assert stream.read(3) == b"abc"
        assert handle.closed

    def test_create_uploaded_file(self):
        upload = create_uploaded_file(Stream.from_bytes(b"abc"), client_filename="a.txt")
        assert isinstance(upload, UploadedFile)
        assert upload.size == 3

    def test_create_uri(self):
        assert create_uri("https://example.com/x").host == "example.com"
        assert create_uri() == URI()


# ============================================================================
# Server environment
# ============================================================================

class TestServerEnvironment:

    def test_headers_from_server(self):
        headers = headers_from_server({
            "HTTP_ACCEPT": "text/html",
            "HTTP_X_FORWARDED_FOR": "1.2.3.4",
            "CONTENT_TYPE": "application/json",
            "CONTENT_LENGTH": "",
            "REMOTE_ADDR": "5.6.7.8",
        })
        assert headers == {
            "Accept": ["text/html"],
            "X-Forwarded-For": ["1.2.3.4"],
            "Content-Type": ["application/json"],
        }

    def test_cgi_content_keys_win_over_http_duplicates(self):
        headers = headers_from_server({
            "CONTENT_TYPE": "application/json",
            "HTTP_CONTENT_TYPE": "application/json",
            "CONTENT_LENGTH": "12",
            "HTTP_CONTENT_LENGTH": "12",
        })
        assert headers == {"Content-Type": ["application/json"], "Content-Length": ["12"]}

    def test_http_content_type_used_when_cgi_key_missing(self):
        assert headers_from_server({"HTTP_CONTENT_TYPE": "text/plain"}) == {"Content-Type": ["text/plain"]}

    def test_ipv6_uri_matches_parsed_uri(self):
        uri = uri_from_server({"HTTP_HOST": "[::1]:8080", "REQUEST_URI": "/"})
        assert uri.host == URI.parse("http://[::1]:8080/").host

    @pytest.mark.parametrize("server,expected", [
        ({"HTTP_HOST": "example.com", "REQUEST_URI": "/a?b=1"}, "http://example.com/a?b=1"),
        ({"HTTPS": "on", "HTTP_HOST": "example.com:8443", "REQUEST_URI": "/"}, "https://example.com:8443/"),
        ({"HTTPS": "off", "SERVER_NAME": "example.com", "SERVER_PORT": "80"}, "http://example.com/"),
        ({"SERVER_NAME": "example.com", "SERVER_PORT": "8080", "PATH_INFO": "/p",
          "QUERY_STRING": "x=1"}, "http://example.com:8080/p?x=1"),
        ({"HTTP_HOST": "[::1]:8000", "REQUEST_URI": "/"}, "http://[::1]:8000/"),
    ])
    def test_uri_from_server(self, server, expected):
        assert str(uri_from_server(server)) == expected

    def test_server_request_from_globals(self, make_upload, leaf_descriptor):
        server = {
            "REQUEST_METHOD": "post",
            "SERVER_PROTOCOL": "HTTP/1.0",
            "HTTP_HOST": "example.com",
            "REQUEST_URI": "/upload?page=3",
            "CONTENT_TYPE": "multipart/form-data; boundary=x",
            "HTTP_X_REQUEST_ID": "abc",
        }
        request = server_request_from_globals(
            server,
            cookies={"session": "s1"},
            files={"avatar": leaf_descriptor(make_upload(b"hello there!"))},
            post={"title": "Hello"},
        )

        assert request.method == "POST"
        assert request.protocol_version == "1.0"
        assert request.uri.host == "example.com"
        assert request.request_target == "/upload"
        assert request.query_params == {"page": "3"}
        assert request.cookie_params == {"session": "s1"}
        assert request.parsed_body == {"title": "Hello"}
        assert request.get_header_line("Content-Type") == "multipart/form-data; boundary=x"
        assert request.get_header_line("X-Request-Id") == "abc"
        assert request.server_params["HTTP_HOST"] == "example.com"
        assert bytes(request.uploaded_files["avatar"].get_stream()) == b"hello there!"

    def test_defaults_without_environment(self):
        request = server_request_from_globals({})
        assert request.method == "GET"
        assert request.protocol_version == "1.1"
        assert request.headers == {}
        assert request.uploaded_files == {}
        assert request.parsed_body is None

    def test_empty_post_is_none(self):
        assert server_request_from_globals({}, post={}).parsed_body is None

    def test_invalid_header_in_environment(self):
        with pytest.raises(InvalidHeaderFault):
            server_request_from_globals({"HTTP_X_EVIL": "a\r\nSet-Cookie: x"})

    def test_body_stream(self, body_stream):
        assert server_request_from_globals({}, body=body_stream).body is body_stream
