import os

import pytest

import hexcodec
from errors import FormatError


@pytest.mark.parametrize("data", [b"", b"\x00", b"\xff\x00\x10", os.urandom(257)])
def test_decode_inverts_encode(data):
    text = hexcodec.encode(data)
    assert len(text) == 2 * len(data)
    assert hexcodec.decode(text) == data


def test_encode_is_lowercase():
    assert hexcodec.encode(b"\xab\xcd") == "abcd"


def test_decode_accepts_upper_case_and_normalizes():
    assert hexcodec.encode(hexcodec.decode("DEADbeef")) == "deadbeef"


@pytest.mark.parametrize("bad", ["abc", "0g", "12 3", "zz"])
def test_decode_rejects_malformed(bad):
    with pytest.raises(FormatError):
        hexcodec.decode(bad)
