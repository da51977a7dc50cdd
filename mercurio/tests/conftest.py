import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from mercurio.crypto.identity import IdentityManager
from mercurio.crypto.key_codec import public_key_from_crypto
from mercurio.models.crypto import RSAPublicKey
from mercurio.storage.memory import InMemoryCredentialStore


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def recipient_key(rsa_private_key: rsa.RSAPrivateKey) -> RSAPublicKey:
    return public_key_from_crypto(rsa_private_key.public_key())


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def identity_manager(store: InMemoryCredentialStore) -> IdentityManager:
    return IdentityManager(store)
