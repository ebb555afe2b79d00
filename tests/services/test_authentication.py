import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from wallet_login.core.errors import (
    AlreadyExistsError,
    AuthError,
    InternalError,
    NotFoundError,
    SignatureFormatError,
    ValidationError,
)
from wallet_login.core.jwt_utils import TokenProvider
from wallet_login.core.nonce import NonceGenerator
from wallet_login.db.registry import UserRegistry
from wallet_login.models.users import UserRecord
from wallet_login.services.authentication import AuthService
from tests.conftest import TEST_ISSUER, TEST_SECRET, sign_nonce


class TestRegister:
    """Test cases for AuthService.register / get_nonce"""

    def test_register_assigns_nonce(self, auth_service, alice):
        user = auth_service.register(alice.address)

        assert user.address == alice.address.lower()
        assert user.nonce.isdigit()
        assert auth_service.get_nonce(alice.address) == user.nonce

    def test_register_twice(self, auth_service, alice):
        auth_service.register(alice.address)

        with pytest.raises(AlreadyExistsError):
            auth_service.register(alice.address.lower())

    @pytest.mark.parametrize("address", ["0xzz", "0x" + "a" * 39, "hello", ""])
    def test_register_invalid_address(self, auth_service, address):
        """Malformed addresses never reach the registry"""
        with pytest.raises(ValidationError):
            auth_service.register(address)

        assert len(auth_service.registry) == 0

    def test_get_nonce_invalid_address(self, auth_service):
        with pytest.raises(ValidationError):
            auth_service.get_nonce("0xzz" + "0" * 38)

    def test_get_nonce_unknown(self, auth_service, alice):
        with pytest.raises(NotFoundError):
            auth_service.get_nonce(alice.address)


class TestSignIn:
    """Test cases for the sign-in protocol"""

    def test_sign_in_issues_token(self, auth_service, alice):
        nonce = auth_service.register(alice.address).nonce

        token = auth_service.sign_in(alice.address, nonce, sign_nonce(alice, nonce))

        claims = auth_service.tokens.verify(token)
        assert claims.subject == alice.address.lower()

    def test_sign_in_rotates_nonce(self, auth_service, alice):
        nonce = auth_service.register(alice.address).nonce

        user = auth_service.authenticate(alice.address, nonce, sign_nonce(alice, nonce))

        assert user.nonce != nonce
        assert auth_service.get_nonce(alice.address) == user.nonce

    def test_replay_rejected(self, auth_service, alice):
        """The same (address, nonce, signature) succeeds at most once"""
        nonce = auth_service.register(alice.address).nonce
        signature = sign_nonce(alice, nonce)

        auth_service.sign_in(alice.address, nonce, signature)
        with pytest.raises(AuthError):
            auth_service.sign_in(alice.address, nonce, signature)

    def test_lowercase_claim_accepted(self, auth_service, alice):
        nonce = auth_service.register(alice.address).nonce

        token = auth_service.sign_in(alice.address.lower(), nonce, sign_nonce(alice, nonce))

        assert token

    def test_signature_from_other_key(self, auth_service, alice, bob):
        """A valid signature by someone else is an auth failure and keeps the nonce"""
        nonce = auth_service.register(alice.address).nonce

        with pytest.raises(AuthError):
            auth_service.sign_in(alice.address, nonce, sign_nonce(bob, nonce))

        assert auth_service.get_nonce(alice.address) == nonce

    def test_wrong_nonce(self, auth_service, alice):
        nonce = auth_service.register(alice.address).nonce
        stale = str(int(nonce) + 1)

        with pytest.raises(AuthError):
            auth_service.sign_in(alice.address, stale, sign_nonce(alice, stale))

        assert auth_service.get_nonce(alice.address) == nonce

    def test_nonce_mismatch_and_signer_mismatch_look_the_same(self, auth_service, alice, bob):
        nonce = auth_service.register(alice.address).nonce

        with pytest.raises(AuthError) as wrong_nonce:
            auth_service.sign_in(alice.address, nonce + "0", sign_nonce(alice, nonce + "0"))
        with pytest.raises(AuthError) as wrong_signer:
            auth_service.sign_in(alice.address, nonce, sign_nonce(bob, nonce))

        assert str(wrong_nonce.value) == str(wrong_signer.value)

    def test_unknown_address(self, auth_service, alice):
        with pytest.raises(NotFoundError):
            auth_service.sign_in(alice.address, "123", sign_nonce(alice, "123"))

    @pytest.mark.parametrize("address,nonce,signature", [
        ("0xzz", "123", "0x00"),
        ("0x" + "ab" * 20, "12a", "0x00"),
        ("0x" + "ab" * 20, "", "0x00"),
        ("0x" + "ab" * 20, "123", ""),
    ])
    def test_validation_before_registry(self, auth_service, address, nonce, signature):
        with pytest.raises(ValidationError):
            auth_service.sign_in(address, nonce, signature)

    @pytest.mark.parametrize("signature", ["0xnothex", "0x" + "00" * 64, "0x" + "01" * 64 + "05"])
    def test_malformed_signature(self, auth_service, alice, signature):
        nonce = auth_service.register(alice.address).nonce

        with pytest.raises(SignatureFormatError):
            auth_service.sign_in(alice.address, nonce, signature)

        assert auth_service.get_nonce(alice.address) == nonce

    def test_malformed_signature_is_logged(self, auth_service, alice, caplog):
        nonce = auth_service.register(alice.address).nonce

        with caplog.at_level(logging.WARNING, logger="wallet_login.services.authentication"):
            with pytest.raises(SignatureFormatError):
                auth_service.sign_in(alice.address, nonce, "0x1234")

        assert f"sign-in rejected for {alice.address.lower()}: malformed signature" in caplog.text

    def test_entropy_failure_keeps_old_nonce(self, auth_service, alice):
        """A failed rotation is a failed sign-in and leaves the nonce usable"""
        nonce = auth_service.register(alice.address).nonce
        signature = sign_nonce(alice, nonce)

        def broken(n):
            raise OSError("entropy pool exhausted")

        working = auth_service.nonces
        auth_service.nonces = NonceGenerator(randbelow=broken)
        with pytest.raises(InternalError):
            auth_service.sign_in(alice.address, nonce, signature)
        assert auth_service.get_nonce(alice.address) == nonce

        auth_service.nonces = working
        assert auth_service.sign_in(alice.address, nonce, signature)

    def test_concurrent_replay_single_winner(self, auth_service, alice):
        """Racing sign-ins with one signed nonce: exactly one token"""
        workers = 16
        nonce = auth_service.register(alice.address).nonce
        signature = sign_nonce(alice, nonce)
        barrier = threading.Barrier(workers, timeout=10)

        def attempt(_):
            barrier.wait()
            return auth_service.sign_in(alice.address, nonce, signature)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(attempt, i) for i in range(workers)]

        tokens = [f.result() for f in futures if f.exception() is None]
        rejected = [f for f in futures if isinstance(f.exception(), AuthError)]
        assert len(tokens) == 1
        assert len(rejected) == workers - 1
        assert auth_service.get_nonce(alice.address) != nonce


class TestAuthorize:
    """Test cases for resolving bearer tokens to users"""

    def test_authorize_returns_current_record(self, auth_service, alice):
        nonce = auth_service.register(alice.address).nonce
        token = auth_service.sign_in(alice.address, nonce, sign_nonce(alice, nonce))

        user = auth_service.authorize(token)

        assert user == UserRecord(address=alice.address.lower(), nonce=auth_service.get_nonce(alice.address))

    def test_authorize_expired(self, alice):
        past = datetime.now(timezone.utc) - timedelta(minutes=16)
        service = AuthService(
            registry=UserRegistry(),
            tokens=TokenProvider(TEST_SECRET, TEST_ISSUER, timedelta(minutes=15), clock=lambda: past),
            nonces=NonceGenerator(),
        )
        nonce = service.register(alice.address).nonce
        token = service.sign_in(alice.address, nonce, sign_nonce(alice, nonce))

        with pytest.raises(AuthError):
            service.authorize(token)

    def test_authorize_unknown_subject(self, auth_service, alice):
        token = auth_service.tokens.issue(alice.address.lower())

        with pytest.raises(AuthError):
            auth_service.authorize(token)

    def test_authorize_garbage(self, auth_service):
        with pytest.raises(AuthError):
            auth_service.authorize("garbage")
