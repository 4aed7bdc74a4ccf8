import os

import pytest

import permutation
from errors import DecryptionError, FormatError, InvalidKeyError


def test_parse_key():
    assert permutation.parse_key("201") == (2, 0, 1)
    assert permutation.parse_key("9876543210") == tuple(range(9, -1, -1))


@pytest.mark.parametrize("key", ["112", "0", "", "12", "0a1", "013", "01 2", 201])
def test_invalid_keys_are_rejected(key):
    with pytest.raises(InvalidKeyError):
        permutation.parse_key(key)


def test_invert():
    perm = (2, 0, 3, 1)
    inv = permutation.invert(perm)
    assert all(inv[perm[i]] == i for i in range(4))


def test_output_position_i_takes_key_i():
    ct = permutation.encrypt(b"abc", "201")
    assert ct == b"cab\x03\x03\x03"
    assert permutation.encrypt(b"abcdef", "120")[:6] == b"bcaefd"


def test_short_last_block_is_padded():
    ct = permutation.encrypt(b"abcd", "10")
    assert len(ct) == 6
    assert permutation.decrypt(ct, "10") == b"abcd"


@pytest.mark.parametrize("key", ["10", "201", "3021", "9081726354"])
@pytest.mark.parametrize("length", [0, 1, 5, 10, 31])
def test_round_trip(key, length):
    data = os.urandom(length)
    assert permutation.decrypt(permutation.encrypt(data, key), key) == data


def test_decrypt_rejects_misaligned_or_empty():
    with pytest.raises(FormatError):
        permutation.decrypt(b"abcd", "201")
    with pytest.raises(FormatError):
        permutation.decrypt(b"", "201")


def test_decrypt_rejects_bad_padding():
    with pytest.raises(DecryptionError):
        permutation.decrypt(b"abcabc", "012")


@pytest.mark.parametrize("length", [0, 3, 4, 40_000])
def test_file_round_trip(tmp_path, monkeypatch, length):
    monkeypatch.setattr(permutation, "CHUNK_BLOCKS", 7)
    data = os.urandom(length)
    src, enc, dec = tmp_path / "p.bin", tmp_path / "p.enc", tmp_path / "p.dec"
    src.write_bytes(data)

    permutation.encrypt_file(src, enc, "3021")
    assert enc.read_bytes() == permutation.encrypt(data, "3021")
    permutation.decrypt_file(enc, dec, "3021")
    assert dec.read_bytes() == data


def test_file_decrypt_rejects_empty_file(tmp_path):
    src = tmp_path / "empty"
    src.write_bytes(b"")
    with pytest.raises(FormatError):
        permutation.decrypt_file(src, tmp_path / "out", "01")
    assert not (tmp_path / "out").exists()
