import pytest
from datetime import timedelta
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient

from wallet_login.core.config import Settings
from wallet_login.core.jwt_utils import TokenProvider
from wallet_login.core.nonce import NonceGenerator
from wallet_login.db.registry import UserRegistry
from wallet_login.server import create_app
from wallet_login.services.authentication import AuthService


TEST_SECRET = "test-encode-key-0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_ISSUER = "wallet-login-test"

# Deterministic keys so failures are reproducible
ALICE_KEY = "0x" + "11" * 32
BOB_KEY = "0x" + "22" * 32


def sign_nonce(account, nonce: str) -> str:
    """personal_sign ``nonce`` the way MetaMask does; returns 0x-prefixed hex with v=27/28"""
    signed = account.sign_message(encode_defunct(text=nonce))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a known signing key, independent of the environment"""
    return Settings(
        ENCODE_KEY=TEST_SECRET,
        TOKEN_ISSUER=TEST_ISSUER,
        ACCESS_TOKEN_EXPIRE_SECONDS=900,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def token_provider() -> TokenProvider:
    return TokenProvider(secret=TEST_SECRET, issuer=TEST_ISSUER, ttl=timedelta(minutes=15))


@pytest.fixture
def auth_service(token_provider) -> AuthService:
    """A fresh service with its own empty registry"""
    return AuthService(
        registry=UserRegistry(),
        tokens=token_provider,
        nonces=NonceGenerator(),
    )


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def client(app) -> TestClient:
    """Create a test client for the FastAPI application"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)
