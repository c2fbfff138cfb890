"""
Session Authentication

The ledger core only needs to know who is signed in (or that nobody is)
and to hear about every change. Any non-null identity may read and write
the collection; with no identity the core is inert.

Two ways in:
- Anonymous sign-in, when no studio passcode is configured
- Passcode sign-in, checked against the configured studio passcode
"""

import hmac
from typing import Callable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """The signed-in staff session."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    is_anonymous: bool = True


IdentityListener = Callable[[Optional[Identity]], None]


class AuthError(Exception):
    """Sign-in was rejected."""
    pass


class AuthService:
    """
    Holds the current identity and notifies listeners on every transition.
    """

    def __init__(self, passcode: Optional[str] = None):
        self._passcode = passcode
        self._identity: Optional[Identity] = None
        self._listeners: list[IdentityListener] = []

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def requires_passcode(self) -> bool:
        return bool(self._passcode)

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """Register for identity changes. Returns a function that removes the listener."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def sign_in_anonymously(self) -> Identity:
        """
        Start an anonymous session.

        Raises:
            AuthError: If the studio requires a passcode
        """
        if self.requires_passcode:
            raise AuthError("Este estúdio exige senha de acesso")
        return self._set_identity(Identity(uid=uuid4().hex))

    def sign_in_with_passcode(
        self,
        passcode: str,
        display_name: Optional[str] = None,
    ) -> Identity:
        """
        Start a session after checking the studio passcode.

        Raises:
            AuthError: If the passcode does not match
        """
        expected = self._passcode or ""
        if not passcode or not hmac.compare_digest(passcode.encode(), expected.encode()):
            raise AuthError("Senha incorreta")
        return self._set_identity(Identity(
            uid=uuid4().hex,
            display_name=(display_name or "").strip() or None,
            is_anonymous=False,
        ))

    def sign_out(self) -> None:
        if self._identity is not None:
            self._set_identity(None)

    def _set_identity(self, identity: Optional[Identity]) -> Optional[Identity]:
        self._identity = identity
        for listener in list(self._listeners):
            listener(identity)
        return identity
