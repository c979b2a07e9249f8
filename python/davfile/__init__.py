# This file is part of davfile.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

"""Asynchronous WebDAV client for listing, checking, creating, downloading
and uploading remote files.
"""

from .auth import CredentialProvider, DavCredentials, credential_provider
from .dav import DEFAULT_CONTENT_TYPE, WebDavEntry
from .davutils import make_propfind_body, normalize_dav_url
from .errors import *

__version__ = "0.1.0"
