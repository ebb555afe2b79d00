"""
Nonce generation for wallet sign-in.

A nonce is the decimal encoding of a uniform random integer in [0, 2**130 - 1).
That is comfortably above 128 bits of entropy, and a digit-only string is easy to
validate and passes through JSON untouched.
"""

import secrets
from typing import Callable

from wallet_login.core.errors import RandomSourceError

NONCE_UPPER_BOUND = 2**130 - 1


class NonceGenerator:
    """Produces one-time challenges. Stateless apart from the entropy source."""

    def __init__(self, randbelow: Callable[[int], int] = secrets.randbelow):
        self._randbelow = randbelow

    def next(self) -> str:
        try:
            value = self._randbelow(NONCE_UPPER_BOUND)
        except (OSError, NotImplementedError) as e:
            raise RandomSourceError() from e
        return str(value)
