from dataclasses import dataclass


@dataclass(frozen=True)
class UserRecord:
    """A registered account and its current sign-in nonce.

    Example:
    {
        "address": "0x52908400098527886e0f7030069857d2e4169ee7",
        "nonce": "829571033517823402911475086734115270371"
    }
    """

    address: str
    nonce: str
