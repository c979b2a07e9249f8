# This file is part of davfile.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = ("CredentialProvider", "DavBasicAuth", "DavCredentials", "credential_provider")

import base64
import logging
import os
import threading

from requests import PreparedRequest
from requests.auth import AuthBase

log = logging.getLogger(__name__)


class DavCredentials:
    """User name and password for HTTP Basic authentication.

    Parameters
    ----------
    user : `str`
        User name.
    password : `str`
        Password of ``user``.
    """

    def __init__(self, user: str, password: str) -> None:
        self._user: str = user
        self._password: str = password

    def __repr__(self) -> str:
        # Never include the password in logs or tracebacks.
        return f"DavCredentials(user={self._user!r}, password='***')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DavCredentials):
            return NotImplemented
        return (self._user, self._password) == (other._user, other._password)

    def __hash__(self) -> int:
        return hash((self._user, self._password))

    @property
    def user(self) -> str:
        return self._user

    @property
    def password(self) -> str:
        return self._password

    def authorization(self) -> str:
        """Return the value of the ``Authorization`` header for these
        credentials, i.e. ``Basic <base64(user:password)>``.
        """
        token = base64.b64encode(f"{self._user}:{self._password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"


class CredentialProvider:
    """Thread-safe holder of the credentials used by every request.

    Setting and clearing the credentials (login and logout) is the
    responsibility of the application. Operations only read the current
    value through `snapshot`, once per call.

    Parameters
    ----------
    credentials : `DavCredentials`, optional
        Initial credentials. If `None`, no credentials are set.
    """

    # Environment variables read by `from_env`.
    ENV_USER: str = "DAVFILE_USER"
    ENV_PASSWORD: str = "DAVFILE_PASSWORD"

    def __init__(self, credentials: DavCredentials | None = None) -> None:
        self._lock = threading.Lock()
        self._credentials: DavCredentials | None = credentials

    @classmethod
    def from_env(cls) -> CredentialProvider:
        """Create a provider initialized from the environment variables
        ``DAVFILE_USER`` and ``DAVFILE_PASSWORD``.

        If any of those variables is not set, the returned provider holds
        no credentials.
        """
        user = os.getenv(cls.ENV_USER)
        password = os.getenv(cls.ENV_PASSWORD)
        if user is None or password is None:
            log.debug("credentials not found in environment variables %s, %s", cls.ENV_USER, cls.ENV_PASSWORD)
            return cls()

        return cls(DavCredentials(user, password))

    def set_credentials(self, user: str, password: str) -> None:
        """Replace the current credentials."""
        with self._lock:
            self._credentials = DavCredentials(user, password)

    def clear(self) -> None:
        """Forget the current credentials."""
        with self._lock:
            self._credentials = None

    def snapshot(self) -> DavCredentials | None:
        """Return the credentials currently set, or `None`."""
        with self._lock:
            return self._credentials

    @property
    def is_set(self) -> bool:
        return self.snapshot() is not None


class DavBasicAuth(AuthBase):
    """Attach a Basic 'Authorization' header to each request.

    Parameters
    ----------
    credentials : `DavCredentials`
        Snapshot of the credentials to authenticate with.
    """

    def __init__(self, credentials: DavCredentials) -> None:
        self._credentials = credentials

    def __call__(self, req: PreparedRequest) -> PreparedRequest:
        req.headers["Authorization"] = self._credentials.authorization()
        return req


# Process-wide credentials shared by all the entries which are not given
# an explicit provider.
credential_provider: CredentialProvider = CredentialProvider()
