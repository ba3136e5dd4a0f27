import pytest

from py_zipkin_sql import util


def test_unsigned_hex_to_signed_int():
    assert util.unsigned_hex_to_signed_int("17133d482ba4f605") == 1662740067609015813
    assert (
        util.unsigned_hex_to_signed_int("b6dbb1c2b362bf51") == -5270423489115668655
    )


def test_signed_int_to_unsigned_hex():
    assert util.signed_int_to_unsigned_hex(1662740067609015813) == "17133d482ba4f605"
    assert (
        util.signed_int_to_unsigned_hex(-5270423489115668655) == "b6dbb1c2b362bf51"
    )
    assert util.signed_int_to_unsigned_hex(1) == "0000000000000001"


@pytest.mark.parametrize(
    "trace_id,expected",
    [
        ("17133d482ba4f605", 1662740067609015813),
        ("463ac35c9f6413ad17133d482ba4f605", 1662740067609015813),
        ("b6dbb1c2b362bf51", -5270423489115668655),
    ],
)
def test_trace_id_to_signed_int(trace_id, expected):
    assert util.trace_id_to_signed_int(trace_id) == expected


def test_ipv4_to_signed_int():
    assert util.ipv4_to_signed_int("10.0.0.6") == 167772166
    assert util.ipv4_to_signed_int("255.255.255.255") == -1
    assert util.ipv4_to_signed_int(None) is None


def test_signed_int_to_ipv4():
    assert util.signed_int_to_ipv4(167772166) == "10.0.0.6"
    assert util.signed_int_to_ipv4(-1) == "255.255.255.255"
    assert util.signed_int_to_ipv4(0) is None
    assert util.signed_int_to_ipv4(None) is None


def test_ipv6_to_bytes():
    assert util.ipv6_to_bytes("2001:db8::1") == (
        b" \x01\r\xb8" + b"\x00" * 11 + b"\x01"
    )
    assert util.ipv6_to_bytes(None) is None


def test_bytes_to_ipv6():
    assert util.bytes_to_ipv6(b"\x00" * 15 + b"\x01") == "::1"
    assert util.bytes_to_ipv6(b"") is None


@pytest.mark.parametrize(
    "port,signed", [(8080, 8080), (32767, 32767), (32768, -32768), (65535, -1)]
)
def test_port_conversions(port, signed):
    assert util.port_to_signed_short(port) == signed
    assert util.signed_short_to_port(signed) == port


def test_port_conversions_none():
    assert util.port_to_signed_short(None) is None
    assert util.signed_short_to_port(None) is None
