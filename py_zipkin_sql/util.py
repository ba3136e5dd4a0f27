import socket
import struct
from typing import Optional


def unsigned_hex_to_signed_int(hex_string: str) -> int:
    """Converts a 64-bit hex string to a signed int value.

    This is due to the fact that Apache Thrift and the BIGINT columns we
    write to only have signed values.

    Examples:
        '17133d482ba4f605' => 1662740067609015813
        'b6dbb1c2b362bf51' => -5270423489115668655

    :param hex_string: the string representation of a zipkin ID
    :returns: signed int representation
    """
    return struct.unpack("q", struct.pack("Q", int(hex_string, 16)))[0]


def signed_int_to_unsigned_hex(signed_int: int) -> str:
    """Converts a signed int value to a 16 characters hex string.

    Examples:
        1662740067609015813  => '17133d482ba4f605'
        -5270423489115668655 => 'b6dbb1c2b362bf51'
        1                    => '0000000000000001'

    :param signed_int: an int to convert
    :returns: unsigned hex string
    """
    return f"{struct.unpack('Q', struct.pack('q', signed_int))[0]:016x}"


def trace_id_to_signed_int(trace_id: str) -> int:
    """Returns the lower 64 bits of a 64 or 128-bit trace id as a signed int."""
    return unsigned_hex_to_signed_int(trace_id[-16:])


def ipv4_to_signed_int(ipv4: Optional[str]) -> Optional[int]:
    """Converts a dotted ipv4 address to a signed int in network byte order.

    Examples:
        '10.0.0.6'        => 167772166
        '255.255.255.255' => -1
    """
    if not ipv4:
        return None
    return struct.unpack("!i", socket.inet_pton(socket.AF_INET, ipv4))[0]


def signed_int_to_ipv4(ipv4_int: Optional[int]) -> Optional[str]:
    # 0 is what thrift sends when the address is unset
    if not ipv4_int:
        return None
    return socket.inet_ntop(socket.AF_INET, struct.pack("!i", ipv4_int))


def ipv6_to_bytes(ipv6: Optional[str]) -> Optional[bytes]:
    if not ipv6:
        return None
    return socket.inet_pton(socket.AF_INET6, ipv6)


def bytes_to_ipv6(ipv6_bytes: Optional[bytes]) -> Optional[str]:
    if not ipv6_bytes:
        return None
    return socket.inet_ntop(socket.AF_INET6, ipv6_bytes)


def port_to_signed_short(port: Optional[int]) -> Optional[int]:
    """Zipkin stores unsigned ports in signed 16-bit columns, so we have to
    convert the value. 8080 stays 8080, 65535 becomes -1.
    """
    if port is None:
        return None
    return struct.unpack("h", struct.pack("H", port))[0]


def signed_short_to_port(port: Optional[int]) -> Optional[int]:
    if port is None:
        return None
    return struct.unpack("H", struct.pack("h", port))[0]
