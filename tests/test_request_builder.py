"""Tests for request assembly (headers, query, body, auth, referer)."""

import base64
import datetime
import json

import pytest
from rnet import Method

from masque._base import (
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    apply_params,
    build_request,
    encode_multipart,
    get_header,
    set_header,
    to_method,
    validate_url,
)
from masque._config import ClientConfig, RequestParams
from masque._errors import BodyEncodingError, FileAccessError, InvalidURL


def config(**options) -> ClientConfig:
    return ClientConfig.from_options(**options)


class TestHeaderHelpers:
    def test_set_header_replaces_any_case(self):
        headers = {"user-agent": "a"}
        set_header(headers, "User-Agent", "b")
        assert headers == {"User-Agent": "b"}

    def test_get_header_case_insensitive(self):
        assert get_header({"X-Thing": "1"}, "x-thing") == "1"
        assert get_header({}, "x-thing") is None


class TestMethods:
    def test_to_method(self):
        assert to_method("get") == Method.GET
        assert to_method("PATCH") == Method.PATCH

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown HTTP method"):
            build_request("BREW", "https://example.com", config())


class TestValidateUrl:
    @pytest.mark.parametrize("url", [
        "ftp://example.com/file",
        "example.com/path",
        "https://",
        "http://example.com:notaport/",
    ])
    def test_rejected(self, url):
        with pytest.raises(InvalidURL):
            validate_url(url)

    def test_accepted(self):
        validate_url("https://user:pw@example.com:8443/a?b=c")


class TestHeaderPrecedence:
    def test_impersonation_headers_present(self):
        req = build_request("GET", "https://example.com", config(impersonate="chrome_133"))
        assert "Chrome/133.0.0.0" in req.headers["User-Agent"]
        assert "sec-ch-ua" in req.headers

    def test_client_headers_override_impersonation(self):
        req = build_request(
            "GET",
            "https://example.com",
            config(impersonate="chrome_133", headers={"user-agent": "custom/1.0"}),
        )
        assert get_header(req.headers, "User-Agent") == "custom/1.0"
        assert len([k for k in req.headers if k.lower() == "user-agent"]) == 1

    def test_call_headers_override_client(self):
        req = build_request(
            "GET",
            "https://example.com",
            config(headers={"X-Env": "client"}),
            RequestParams(headers={"x-env": "call"}),
        )
        assert get_header(req.headers, "X-Env") == "call"

    def test_call_headers_not_persisted(self):
        cfg = config(headers={"X-A": "1"})
        build_request("GET", "https://example.com", cfg, RequestParams(headers={"X-B": "2"}))
        assert dict(cfg.headers) == {"X-A": "1"}

    def test_no_impersonation_sends_only_explicit_headers(self):
        req = build_request("GET", "https://example.com", config(referer=False))
        assert req.headers == {}


class TestQueryParams:
    def test_call_then_client(self):
        req = build_request(
            "GET",
            "https://example.com/search",
            config(params={"k": "client"}),
            RequestParams(params={"k": "call"}),
        )
        assert req.url == "https://example.com/search?k=call&k=client"

    def test_existing_query_preserved(self):
        assert apply_params("https://x.io/p?a=1", {"b": "2"}) == "https://x.io/p?a=1&b=2"

    def test_fragment_kept_last(self):
        assert apply_params("https://x.io/p#top", {"b": "2"}) == "https://x.io/p?b=2#top"

    def test_sequence_values(self):
        assert apply_params("https://x.io/", {"t": ["a", "b"]}) == "https://x.io/?t=a&t=b"

    def test_no_params_leaves_url(self):
        assert apply_params("https://x.io/p?a=1", None, {}) == "https://x.io/p?a=1"


class TestBody:
    def test_json_body(self):
        req = build_request("POST", "https://x.io/api", config(), RequestParams(json={"a": 1}))
        assert json.loads(req.body) == {"a": 1}
        assert req.headers["Content-Type"] == JSON_CONTENT_TYPE

    def test_form_body(self):
        req = build_request(
            "POST", "https://x.io/api", config(), RequestParams(data={"a": "1", "b": "x y"})
        )
        assert req.body == b"a=1&b=x+y"
        assert req.headers["Content-Type"] == FORM_CONTENT_TYPE

    def test_json_wins_over_form(self):
        req = build_request(
            "POST", "https://x.io/api", config(), RequestParams(json={"j": 1}, data={"f": "2"})
        )
        assert json.loads(req.body) == {"j": 1}
        assert req.headers["Content-Type"] == JSON_CONTENT_TYPE

    def test_content_wins_over_everything(self):
        req = build_request(
            "PUT",
            "https://x.io/api",
            config(),
            RequestParams(content=b"raw", json={"j": 1}, data={"f": "2"}),
        )
        assert req.body == b"raw"
        assert "Content-Type" not in req.headers

    def test_str_content_encoded(self):
        req = build_request("POST", "https://x.io/", config(), RequestParams(content="héllo"))
        assert req.body == "héllo".encode("utf-8")

    def test_body_ignored_for_get(self):
        req = build_request("GET", "https://x.io/", config(), RequestParams(json={"a": 1}))
        assert req.body is None
        assert "Content-Type" not in req.headers

    def test_unserializable_json(self):
        with pytest.raises(BodyEncodingError) as exc_info:
            build_request("POST", "https://x.io/", config(), RequestParams(json={"s": {1, 2}}))
        assert exc_info.value.kind == "json"

    def test_explicit_content_type_overrides_body_type(self):
        req = build_request(
            "POST",
            "https://x.io/",
            config(),
            RequestParams(json={"a": 1}, headers={"content-type": "application/vnd+json"}),
        )
        assert get_header(req.headers, "Content-Type") == "application/vnd+json"


class TestMultipart:
    def test_encodes_files(self, tmp_path):
        upload = tmp_path / "report.txt"
        upload.write_bytes(b"file contents")
        body, content_type = encode_multipart({"doc": str(upload)}, boundary="XYZ")
        assert content_type == "multipart/form-data; boundary=XYZ"
        assert body.startswith(b"--XYZ\r\n")
        assert b'name="doc"; filename="report.txt"' in body
        assert b"\r\n\r\nfile contents\r\n" in body
        assert body.endswith(b"--XYZ--\r\n")

    def test_build_request_sets_content_type(self, tmp_path):
        upload = tmp_path / "a.bin"
        upload.write_bytes(b"\x00\x01")
        req = build_request(
            "POST", "https://x.io/up", config(), RequestParams(files={"f": str(upload)})
        )
        assert req.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        assert b"\x00\x01" in req.body

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope.txt"
        with pytest.raises(FileAccessError) as exc_info:
            build_request(
                "POST", "https://x.io/up", config(), RequestParams(files={"f": str(missing)})
            )
        assert exc_info.value.path == str(missing)
        assert isinstance(exc_info.value, OSError)


class TestAuth:
    def test_basic_auth(self):
        req = build_request("GET", "https://x.io/", config(auth=("user", "pw")))
        expected = base64.b64encode(b"user:pw").decode("ascii")
        assert req.headers["Authorization"] == f"Basic {expected}"

    def test_call_auth_overrides_client(self):
        req = build_request(
            "GET", "https://x.io/", config(auth=("a", "1")), RequestParams(auth=("b", "2"))
        )
        expected = base64.b64encode(b"b:2").decode("ascii")
        assert req.headers["Authorization"] == f"Basic {expected}"

    def test_bearer_wins_over_basic(self):
        req = build_request(
            "GET", "https://x.io/", config(auth=("a", "1"), auth_bearer="tok")
        )
        assert req.headers["Authorization"] == "Bearer tok"

    def test_bad_auth_type(self):
        with pytest.raises(TypeError):
            config(auth="user:pw")


class TestCookiesHeader:
    def test_call_cookies(self):
        req = build_request(
            "GET", "https://x.io/", config(), RequestParams(cookies={"a": "1", "b": "2"})
        )
        assert req.headers["Cookie"] == "a=1; b=2"


class TestReferer:
    def test_injected_for_non_root_path(self):
        req = build_request("GET", "https://shop.example.com/items/42", config())
        assert req.headers["Referer"] == "https://shop.example.com/"

    @pytest.mark.parametrize("url", ["https://example.com", "https://example.com/"])
    def test_not_injected_at_root(self, url):
        req = build_request("GET", url, config())
        assert "Referer" not in req.headers

    def test_explicit_referer_kept(self):
        req = build_request(
            "GET",
            "https://example.com/a",
            config(),
            RequestParams(headers={"referer": "https://google.com/"}),
        )
        assert get_header(req.headers, "Referer") == "https://google.com/"

    def test_disabled(self):
        req = build_request("GET", "https://example.com/a", config(referer=False))
        assert "Referer" not in req.headers

    def test_userinfo_stripped(self):
        req = build_request("GET", "https://u:p@example.com:8443/a", config())
        assert req.headers["Referer"] == "https://example.com:8443/"


class TestTimeout:
    def test_client_default(self):
        req = build_request("GET", "https://x.io/", config())
        assert req.timeout == datetime.timedelta(seconds=30)

    def test_call_overrides(self):
        req = build_request("GET", "https://x.io/", config(), RequestParams(timeout=2.5))
        assert req.timeout == datetime.timedelta(seconds=2.5)
        assert req.send_kwargs()["timeout"] == datetime.timedelta(seconds=2.5)

    def test_non_positive_means_no_deadline(self):
        req = build_request("GET", "https://x.io/", config(timeout=0))
        assert req.timeout is None
        assert "timeout" not in req.send_kwargs()
