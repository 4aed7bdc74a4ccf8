import pytest

import rsa_engine


@pytest.fixture(scope="session")
def rsa_keys():
    """512-bit key pair shared by the RSA tests (generation is the slow part)."""
    return rsa_engine.generate_keypair(512)


@pytest.fixture(scope="session")
def rsa_keys_1024():
    return rsa_engine.generate_keypair(1024)
