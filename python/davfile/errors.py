# This file is part of davfile.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

"""Exceptions raised by the layers below `WebDavEntry`.

None of these escape the public asynchronous operations of `WebDavEntry`,
which convert them into a negative result. Only `ConfigurationError` is
raised to callers, when an entry is built from a malformed URL.
"""

from __future__ import annotations

__all__ = (
    "ConfigurationError",
    "DavError",
    "LocalPreconditionError",
    "NormalizationError",
    "ParseError",
    "TransportError",
)


class DavError(Exception):
    """Base class of all the errors of this package."""


class ConfigurationError(DavError, ValueError):
    """Credentials are not set or a URL is not a well-formed WebDAV URL."""


class NormalizationError(DavError):
    """A URL can not be percent-encoded into a form usable by the
    transport.
    """


class TransportError(DavError, OSError):
    """The request could not be sent or the server answered with an
    unexpected status.

    Parameters
    ----------
    message : `str`
        Description of the failure.
    status : `int`, optional
        HTTP status of the response, if a response was received.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(DavError):
    """A single ``response`` element of a multi-status body can not be
    interpreted.
    """


class LocalPreconditionError(DavError, FileExistsError):
    """The local destination of a download already exists and replacing it
    was not requested.
    """
