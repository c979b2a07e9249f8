# This file is part of davfile.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = ("DEFAULT_CONTENT_TYPE", "WebDavEntry")

import asyncio
import logging
import os
import tempfile
from collections.abc import Iterable
from datetime import datetime

from .auth import CredentialProvider, DavCredentials, credential_provider
from .davutils import (
    DavClient,
    DavClientPool,
    DavConfigPool,
    DavPropfindParser,
    check_dav_url,
    normalize_dav_url,
    redact_url,
)
from .errors import ConfigurationError, DavError, LocalPreconditionError, NormalizationError

log = logging.getLogger(__name__)

# Content type of uploaded data when the caller does not provide one.
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class DavGlobals:
    """Helper container to encapsulate all the global objects needed by this
    module.
    """

    def __init__(self) -> None:
        self._client_pool: DavClientPool
        self._reset()

    def _reset(self) -> None:
        """Initialize all the globals.

        This method is a helper for reinitializing globals in tests.
        """
        config_pool = DavConfigPool("DAVFILE_WEBDAV_CONFIG")
        self._client_pool = DavClientPool(config_pool)

    def client_pool(self) -> DavClientPool:
        """Return the pool of reusable webDAV clients."""
        return self._client_pool


# Convenience object to encapsulate all global objects needed by this module.
dav_globals: DavGlobals = DavGlobals()


class WebDavEntry:
    """A remote file or directory reachable through WebDAV.

    An entry is a plain descriptor: building one does not contact the
    server, and it holds no resource that would need to be released.

    Every network operation is a coroutine which runs the blocking request
    in a worker thread. No operation raises: failures are logged at debug
    level and reported as `False`, an empty list or `None`.

    Parameters
    ----------
    url : `str`
        URL of the resource, e.g. 'davs://webdav.example.org/dir/file.txt'.
        The schemes 'http' and 'https' are also accepted.
    credentials : `CredentialProvider`, optional
        Provider of the credentials to authenticate with. By default, the
        process-wide provider `davfile.auth.credential_provider` is used.

    Raises
    ------
    ConfigurationError
        Raised if `url` is not a well-formed WebDAV URL.
    """

    def __init__(self, url: str, credentials: CredentialProvider | None = None) -> None:
        self._parsed = check_dav_url(url)
        self._raw_url: str = url

        # URL used to talk to the server, or None if it can not be
        # encoded. In that case no request is ever sent for this entry.
        self._normalized_url: str | None = normalize_dav_url(url)

        self._credentials: CredentialProvider = credential_provider if credentials is None else credentials

        self.display_name: str | None = None
        self.size: int = 0
        self.content_type: str = ""
        self.last_modified: datetime | None = None
        self.parent: str = ""
        self.url_name: str = ""

    def __str__(self) -> str:
        return redact_url(self._raw_url)

    def __repr__(self) -> str:
        return f"WebDavEntry({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WebDavEntry):
            return NotImplemented
        return self._raw_url == other._raw_url

    def __hash__(self) -> int:
        return hash(self._raw_url)

    @property
    def raw_url(self) -> str:
        return self._raw_url

    @property
    def path(self) -> str:
        return self._raw_url

    @property
    def normalized_url(self) -> str | None:
        return self._normalized_url

    @property
    def host(self) -> str | None:
        return self._parsed.host

    def _prepare(self) -> tuple[str, DavCredentials, DavClient]:
        """Return the URL, the credentials and the client to use for a
        request.

        Raises
        ------
        NormalizationError
            Raised if the URL of this entry could not be normalized, or if
            no client can be built for it.
        ConfigurationError
            Raised if no credentials are set.
        """
        if self._normalized_url is None:
            raise NormalizationError(f"URL of {self} could not be normalized")

        if (credentials := self._credentials.snapshot()) is None:
            raise ConfigurationError("No WebDAV credentials are set")

        try:
            client = dav_globals.client_pool().get_client_for_url(self._normalized_url)
        except ValueError as e:
            raise NormalizationError(f"No endpoint can be derived from URL of {self}: {e}") from e

        return self._normalized_url, credentials, client

    async def _propfind_response(self, props: Iterable[str] = ()) -> tuple[bytes, DavClient] | None:
        """Send a PROPFIND request and return the response body along with
        the client which can parse it, or `None` on failure.
        """
        try:
            url, credentials, client = self._prepare()
            body = await asyncio.to_thread(client.propfind, url, credentials, list(props))
        except (DavError, OSError, ValueError) as e:
            log.debug("PROPFIND %s failed: %s", self, e)
            return None

        return body, client

    async def index_file_info(self) -> bool:
        """Retrieve the metadata of this entry from the server.

        Returns
        -------
        exists : `bool`
            True if the server returned a non-empty description of this
            entry. In that case `size`, `content_type` and `last_modified`
            are updated.
        """
        log.debug("index_file_info %s", self)

        if (response := await self._propfind_response()) is None:
            return False

        body, client = response
        if not body.strip():
            return False

        # The first element describes the requested resource itself.
        properties = client.propfind_parser.parse(body)
        if properties:
            own = properties[0]
            self.size = own.size
            self.content_type = own.content_type
            self.last_modified = own.last_modified

        return True

    async def exists(self) -> bool:
        """Return True if the server describes at least one resource at
        this URL.
        """
        log.debug("exists %s", self)

        try:
            url, credentials, client = self._prepare()
        except DavError as e:
            log.debug("exists %s failed: %s", self, e)
            return False

        return await self._exists(client, url, credentials)

    async def _exists(self, client: DavClient, url: str, credentials: DavCredentials) -> bool:
        try:
            body = await asyncio.to_thread(client.propfind, url, credentials)
        except (DavError, OSError) as e:
            log.debug("PROPFIND %s failed: %s", self, e)
            return False

        return len(client.propfind_parser.responses(body)) > 0

    async def list_files(self) -> list[WebDavEntry]:
        """Return the files contained in this directory.

        Sub-directories are not included. The entries are in the order the
        server listed them. An empty list is returned on failure.
        """
        log.debug("list_files %s", self)

        if (response := await self._propfind_response()) is None:
            return []

        body, client = response
        return self._parse_dir(client.propfind_parser, body)

    def _parse_dir(self, parser: DavPropfindParser, body: bytes) -> list[WebDavEntry]:
        """Build an entry for each file described in the PROPFIND response
        `body`.
        """
        if self._normalized_url is None:
            return []

        base_url = self._normalized_url if self._normalized_url.endswith("/") else self._normalized_url + "/"
        result: list[WebDavEntry] = []
        for prop in parser.parse(body):
            if prop.is_collection:
                continue

            file_name = prop.href[prop.href.rfind("/") + 1 :]
            try:
                entry = WebDavEntry(base_url + file_name, credentials=self._credentials)
            except ConfigurationError as e:
                log.debug("skipping entry %r of %s: %s", prop.href, self, e)
                continue

            entry.display_name = file_name
            entry.content_type = prop.content_type
            entry.size = prop.size
            entry.last_modified = prop.last_modified
            entry.parent = base_url
            entry.url_name = prop.href if prop.href else self._fallback_url_name(base_url)
            result.append(entry)

        return result

    def _fallback_url_name(self, base_url: str) -> str:
        """Return the name to use for an entry which the server listed with
        an empty href.

        If `base_url` lies under `parent`, this is the part of `base_url`
        below `parent`, otherwise the last component of the path of
        `base_url`. Slashes are removed in both cases.
        """
        if self.parent and base_url.startswith(self.parent):
            return base_url[len(self.parent) :].replace("/", "")

        segments = [s for s in base_url.split("://", 1)[-1].split("/")[1:] if s]
        return segments[-1] if segments else ""

    async def make_as_dir(self) -> bool:
        """Create a directory at the URL of this entry, unless something
        already exists there.

        Returns
        -------
        success : `bool`
            True if the directory exists when this method returns.
        """
        log.debug("make_as_dir %s", self)

        try:
            url, credentials, client = self._prepare()
            if not await self._exists(client, url, credentials):
                await asyncio.to_thread(client.mkcol, url, credentials)
        except (DavError, OSError) as e:
            log.debug("make_as_dir %s failed: %s", self, e)
            return False

        return True

    async def download(self) -> bytes | None:
        """Return the contents of this file, or `None` on failure."""
        log.debug("download %s", self)

        try:
            url, credentials, client = self._prepare()
            return await asyncio.to_thread(client.read, url, credentials)
        except (DavError, OSError) as e:
            log.debug("download %s failed: %s", self, e)
            return None

    async def download_to(self, saved_path: str | os.PathLike, replace_existing: bool) -> bool:
        """Download this file to a local file.

        Parameters
        ----------
        saved_path : `str` or `os.PathLike`
            Full path of the local file, including its name.
        replace_existing : `bool`
            Whether to replace `saved_path` if it already exists. If False
            and the file exists, nothing is downloaded.

        Returns
        -------
        success : `bool`
            True if the local file was written.
        """
        log.debug("download_to %s saved_path=%s replace_existing=%s", self, saved_path, replace_existing)

        saved_path = os.fspath(saved_path)
        try:
            if os.path.exists(saved_path) and not replace_existing:
                raise LocalPreconditionError(f"Local file {saved_path} exists and replacing it was not requested")

            url, credentials, client = self._prepare()
            await asyncio.to_thread(self._download_to_file, client, url, credentials, saved_path)
        except (DavError, OSError) as e:
            log.debug("download_to %s failed: %s", self, e)
            return False

        return True

    def _download_to_file(
        self, client: DavClient, url: str, credentials: DavCredentials, saved_path: str
    ) -> None:
        """Download into a temporary file next to `saved_path` and rename it,
        so that `saved_path` is never left partially written.
        """
        directory = os.path.dirname(os.path.abspath(saved_path))
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp.", suffix="." + os.path.basename(saved_path), dir=directory)
        os.close(fd)
        try:
            client.download(url, credentials, tmp_path)
            os.replace(tmp_path, saved_path)
        except BaseException:
            os.remove(tmp_path)
            raise

    async def upload(self, source: str | os.PathLike | bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> bool:
        """Upload a local file or a buffer to the URL of this entry.

        Parameters
        ----------
        source : `str`, `os.PathLike` or `bytes`
            Path of a local file, or the data itself.
        content_type : `str`, optional
            Content type to announce to the server.

        Returns
        -------
        success : `bool`
            True if the server accepted the data.
        """
        log.debug("upload %s content_type=%s", self, content_type)

        try:
            if not isinstance(source, (bytes, bytearray, memoryview)) and not os.path.isfile(source):
                raise FileNotFoundError(f"No local file found at {source}")

            url, credentials, client = self._prepare()
            await asyncio.to_thread(self._put, client, url, credentials, source, content_type)
        except (DavError, OSError) as e:
            log.debug("upload %s failed: %s", self, e)
            return False

        return True

    def _put(
        self,
        client: DavClient,
        url: str,
        credentials: DavCredentials,
        source: str | os.PathLike | bytes | bytearray | memoryview,
        content_type: str,
    ) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            client.put(url, credentials, bytes(source), content_type)
            return

        with open(source, "rb") as f:
            client.put(url, credentials, f, content_type)
