import os

import pytest

import bigint
import rsa_engine
from errors import (
    DecryptionError,
    EncodingError,
    FormatError,
    InvalidKeyError,
    IoError,
    KeyGenError,
)


# -- key generation ---------------------------------------------------------


def test_keypair_is_consistent(rsa_keys):
    kp = rsa_keys
    assert kp.bits == 512
    m = 0x1234567890ABCDEF
    assert pow(pow(m, kp.e, kp.n), kp.d, kp.n) == m
    assert kp.e == rsa_engine.PUBLIC_EXPONENT


def test_keypair_hex_round_trip(rsa_keys):
    again = rsa_engine.RSAKeyPair.from_hex(rsa_keys.n_hex, rsa_keys.e_hex, rsa_keys.d_hex)
    assert again == rsa_keys


@pytest.mark.parametrize("bits", [32, 33, 64, 128])
def test_small_key_sizes_have_exact_bit_length(bits):
    kp = rsa_engine.generate_keypair(bits)
    assert kp.n.bit_length() == bits
    assert (kp.e * kp.d) % bigint.lcm(*_lambda_factors(kp)) == 1


def _lambda_factors(kp):
    from cryptography.hazmat.primitives.asymmetric import rsa

    p, q = rsa.rsa_recover_prime_factors(kp.n, kp.e, kp.d)
    assert p != q
    return p - 1, q - 1


@pytest.mark.parametrize("bits", [0, 16, 31, -5])
def test_key_size_below_minimum_is_rejected(bits):
    with pytest.raises(KeyGenError):
        rsa_engine.generate_keypair(bits)


def test_key_size_must_be_int():
    with pytest.raises(KeyGenError):
        rsa_engine.generate_keypair("512")


@pytest.mark.parametrize("n", [2, 3, 97, 65537, 2 ** 61 - 1])
def test_is_probable_prime_accepts_primes(n):
    assert rsa_engine.is_probable_prime(n)


@pytest.mark.parametrize("n", [0, 1, 4, 561, 65535, (2 ** 61 - 1) * (2 ** 31 - 1)])
def test_is_probable_prime_rejects_composites(n):
    assert not rsa_engine.is_probable_prime(n)


# -- block transform --------------------------------------------------------


def test_encrypt_block_rejects_message_not_below_modulus(rsa_keys):
    with pytest.raises(EncodingError):
        rsa_engine.encrypt_block(rsa_keys.n, rsa_keys.n, rsa_keys.e)


def test_decrypt_block_rejects_ciphertext_not_below_modulus(rsa_keys):
    with pytest.raises(DecryptionError):
        rsa_engine.decrypt_block(rsa_keys.n + 1, rsa_keys.n, rsa_keys.d)


@pytest.mark.parametrize(
    "plaintext",
    [b"", b"A", b"\x00\x00leading zeros", b"trailing zeros\x00\x00", os.urandom(1000)],
)
def test_bytes_round_trip(rsa_keys, plaintext):
    ct = rsa_engine.encrypt(plaintext, rsa_keys.n, rsa_keys.e)
    k = bigint.byte_length(rsa_keys.n)
    assert len(ct) % k == 0
    assert rsa_engine.decrypt(ct, rsa_keys.n, rsa_keys.d) == plaintext


def test_tiny_modulus_cannot_hold_plaintext():
    with pytest.raises(EncodingError):
        rsa_engine.encrypt(b"TEST", 0x3B, 3)


def test_misaligned_ciphertext_is_format_error(rsa_keys):
    ct = rsa_engine.encrypt(b"hello", rsa_keys.n, rsa_keys.e)
    with pytest.raises(FormatError):
        rsa_engine.decrypt(ct[:-1], rsa_keys.n, rsa_keys.d)


def test_wrong_private_key_is_detected(rsa_keys):
    other = rsa_engine.generate_keypair(512)
    ct = rsa_engine.encrypt(b"secret message", rsa_keys.n, rsa_keys.e)
    with pytest.raises(DecryptionError):
        rsa_engine.decrypt(ct, rsa_keys.n, other.d)


def test_non_positive_exponent_is_invalid_key(rsa_keys):
    with pytest.raises(InvalidKeyError):
        rsa_engine.encrypt(b"x", rsa_keys.n, 0)


# -- files ------------------------------------------------------------------


def test_file_round_trip(rsa_keys, tmp_path):
    data = os.urandom(5000)
    src, enc, dec = tmp_path / "in.bin", tmp_path / "in.enc", tmp_path / "in.dec"
    src.write_bytes(data)

    rsa_engine.encrypt_file(src, enc, rsa_keys.n, rsa_keys.e)
    assert enc.stat().st_size % bigint.byte_length(rsa_keys.n) == 0
    rsa_engine.decrypt_file(enc, dec, rsa_keys.n, rsa_keys.d)
    assert dec.read_bytes() == data


def test_failed_decrypt_leaves_destination_untouched(rsa_keys, tmp_path):
    other = rsa_engine.generate_keypair(512)
    src, enc, dec = tmp_path / "in.bin", tmp_path / "in.enc", tmp_path / "out.txt"
    src.write_bytes(b"payload" * 100)
    dec.write_bytes(b"previous contents")
    rsa_engine.encrypt_file(src, enc, rsa_keys.n, rsa_keys.e)

    with pytest.raises(DecryptionError):
        rsa_engine.decrypt_file(enc, dec, rsa_keys.n, other.d)
    assert dec.read_bytes() == b"previous contents"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["in.bin", "in.enc", "out.txt"]


def test_missing_input_file_is_io_error(rsa_keys, tmp_path):
    with pytest.raises(IoError):
        rsa_engine.encrypt_file(tmp_path / "nope", tmp_path / "out", rsa_keys.n, rsa_keys.e)
    assert not (tmp_path / "out").exists()


# -- PEM --------------------------------------------------------------------


def test_public_pem_round_trip(rsa_keys_1024):
    kp = rsa_keys_1024
    pem = rsa_engine.export_public_pem(kp.n, kp.e)
    assert pem.startswith(b"-----BEGIN PUBLIC KEY-----")
    assert rsa_engine.import_public_pem(pem) == (kp.n, kp.e)


def test_private_pem_round_trip_with_passphrase(rsa_keys_1024):
    kp = rsa_keys_1024
    pem = rsa_engine.export_private_pem(kp.n, kp.e, kp.d, passphrase="test123")
    assert b"ENCRYPTED" in pem
    loaded = rsa_engine.import_private_pem(pem, passphrase="test123")
    assert (loaded.n, loaded.e) == (kp.n, kp.e)
    ct = rsa_engine.encrypt(b"serialize test", kp.n, kp.e)
    assert rsa_engine.decrypt(ct, loaded.n, loaded.d) == b"serialize test"


def test_private_pem_wrong_passphrase(rsa_keys_1024):
    kp = rsa_keys_1024
    pem = rsa_engine.export_private_pem(kp.n, kp.e, kp.d, passphrase="right")
    with pytest.raises(InvalidKeyError):
        rsa_engine.import_private_pem(pem, passphrase="wrong")


def test_garbage_pem_is_invalid_key():
    with pytest.raises(InvalidKeyError):
        rsa_engine.import_public_pem(b"not a pem")
