"""
Unit tests for the example handlers, called without a server.
"""

import pytest

from miniserv.handlers import echo, mult, passhead, passparam, register_examples
from miniserv.http import Header, Request, Router, StatusCode
from miniserv.http.response import HTML_CONTENT_TYPE


def make_request(path: str, headers=None) -> Request:
    return Request(method="GET", path=path, headers=headers or [])


class TestEcho:

    def test_echoes_raw_path(self):
        response = echo(make_request("/echo?a=1&b=2"))

        assert response.status == StatusCode.OK
        assert response.body == "/echo?a=1&b=2"
        assert response.get_header("Content-Type") == HTML_CONTENT_TYPE


class TestMult:

    @pytest.mark.parametrize("number, expected", [
        ("21", "42"),
        ("0", "0"),
        ("-7", "-14"),
        ("123456789012345678901234567890", "246913578024691357802469135780"),
    ])
    def test_doubles(self, number: str, expected: str):
        response = mult(make_request(f"/mult?number={number}"))

        assert response.status == StatusCode.OK
        assert response.body == expected

    def test_python_integer_literals(self):
        assert mult(make_request("/mult?number=1_000")).body == "2000"

    def test_not_a_number(self):
        response = mult(make_request("/mult?number=abc"))

        assert response.status == StatusCode.MALFORMED_REQUEST
        assert response.body.startswith("malformed request: ")

    def test_missing_number(self):
        response = mult(make_request("/mult?other=1"))

        assert response.status == StatusCode.FORBIDDEN
        assert response.body == "unauthorized for access to resource /mult"


class TestGuards:

    def test_passhead_with_header(self):
        response = passhead(make_request("/passhead", [Header("Foo", "Bar")]))

        assert response.status == StatusCode.OK
        assert response.body == "ok"

    def test_passhead_without_header(self):
        response = passhead(make_request("/passhead", [Header("foo", "Bar")]))

        assert response.status == StatusCode.FORBIDDEN

    def test_passparam_with_param(self):
        assert passparam(make_request("/passparam?foo=1")).body == "ok"

    def test_passparam_without_param(self):
        assert passparam(make_request("/passparam")).status == StatusCode.FORBIDDEN


def test_register_examples():
    router = register_examples(Router())

    assert [r.path for r in router.routes] == ["/echo", "/mult", "/passhead", "/passparam"]
