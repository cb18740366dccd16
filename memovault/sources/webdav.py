"""WebDAV filesystem adapter (NextCloud, ownCloud, any RFC 4918 server)."""

from __future__ import annotations

import logging
import posixpath
from urllib.parse import quote, unquote, urlsplit
from xml.etree import ElementTree as ET

import httpx

from memovault.sources.filesystem import DirEntry, FileSystemAdapter
from memovault.utils.errors import StorageIOError, StorageNotFoundError

logger = logging.getLogger(__name__)

_NS = {"d": "DAV:"}
_PROPFIND_BODY = """<?xml version="1.0" encoding="UTF-8"?>
<d:propfind xmlns:d="DAV:">
    <d:prop>
        <d:resourcetype/>
    </d:prop>
</d:propfind>
"""


class WebDAVFileSystemAdapter(FileSystemAdapter):
    """Store the note tree on a WebDAV share.

    Paths handed to this adapter are server paths relative to ``base_url``,
    always POSIX style (e.g. ``/MemoVault/Work/Todo_1712345678901``).
    """

    platform = "webdav"

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        root: str = "/MemoVault",
        ssl_verify: bool | str = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the WebDAV adapter.

        Args:
            base_url: WebDAV collection URL
                      (e.g., https://cloud.example.com/remote.php/dav/files/alice)
            username: Account name, or None for anonymous access
            password: Account or app password
            root: Default storage root on the share
            ssl_verify: SSL verification (True, False, or path to CA bundle)
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._base_path = unquote(urlsplit(self.base_url).path).rstrip("/")
        self.root = "/" + root.strip("/")

        auth = (username, password or "") if username else None
        self._client = httpx.AsyncClient(
            auth=auth,
            timeout=httpx.Timeout(60.0, connect=15.0),
            follow_redirects=True,
            verify=ssl_verify,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client connections."""
        await self._client.aclose()

    def default_root(self) -> str | None:
        return self.root

    def _url(self, path: str) -> str:
        normalized = "/" + path.replace("\\", "/").strip("/")
        return f"{self.base_url}{quote(normalized)}"

    def _path_from_href(self, href: str) -> str:
        href_path = unquote(urlsplit(href).path)
        if href_path.startswith(self._base_path):
            href_path = href_path[len(self._base_path):]
        return "/" + href_path.strip("/")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            raise StorageIOError(method, path, e) from e

    @staticmethod
    def _check(response: httpx.Response, operation: str, path: str, ok: tuple[int, ...]) -> None:
        if response.status_code == 404:
            raise StorageNotFoundError(path)
        if response.status_code not in ok:
            raise StorageIOError(operation, path, RuntimeError(f"HTTP {response.status_code}"))

    async def exists(self, path: str) -> bool:
        response = await self._request("PROPFIND", path, headers={"Depth": "0"}, content=_PROPFIND_BODY)
        if response.status_code == 404:
            return False
        self._check(response, "exists", path, (200, 207))
        return True

    async def mkdir(self, path: str) -> None:
        current = ""
        for part in path.replace("\\", "/").strip("/").split("/"):
            if not part:
                continue
            current = f"{current}/{part}"
            response = await self._request("MKCOL", current)
            # 405 = already exists
            if response.status_code not in (201, 405):
                raise StorageIOError("mkdir", current, RuntimeError(f"HTTP {response.status_code}"))
            if response.status_code == 201:
                logger.debug("Created collection: %s", current)

    async def read_dir(self, path: str) -> list[DirEntry]:
        response = await self._request("PROPFIND", path, headers={"Depth": "1"}, content=_PROPFIND_BODY)
        self._check(response, "read_dir", path, (207,))

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as e:
            raise StorageIOError("read_dir", path, e) from e

        own_path = "/" + path.replace("\\", "/").strip("/")
        entries = []
        for item in root.findall("d:response", _NS):
            href = item.findtext("d:href", default="", namespaces=_NS)
            child_path = self._path_from_href(href)
            if child_path == own_path:
                continue
            is_dir = item.find(".//d:resourcetype/d:collection", _NS) is not None
            entries.append(DirEntry(name=posixpath.basename(child_path), path=child_path, is_dir=is_dir))

        entries.sort(key=lambda entry: entry.name)
        return entries

    async def read_file(self, path: str) -> str:
        data = await self.read_binary_file(path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageIOError("read_file", path, e) from e

    async def read_binary_file(self, path: str) -> bytes:
        response = await self._request("GET", path)
        self._check(response, "read_file", path, (200,))
        return response.content

    async def write_text_file(self, path: str, content: str) -> None:
        await self.write_binary_file(path, content.encode("utf-8"))

    async def write_binary_file(self, path: str, data: bytes) -> None:
        response = await self._request("PUT", path, content=data)
        self._check(response, "write_file", path, (200, 201, 204))

    async def rename(self, old_path: str, new_path: str) -> None:
        response = await self._request(
            "MOVE",
            old_path,
            headers={"Destination": self._url(new_path), "Overwrite": "F"},
        )
        self._check(response, "rename", old_path, (201, 204))
        logger.debug("Moved %s -> %s", old_path, new_path)

    async def remove(self, path: str) -> None:
        response = await self._request("DELETE", path)
        if response.status_code == 404:
            return
        self._check(response, "remove", path, (200, 204))

    def join(self, *parts: str) -> str:
        return posixpath.join(*(part.replace("\\", "/") for part in parts))

    def dirname(self, path: str) -> str:
        return posixpath.dirname(path.replace("\\", "/").rstrip("/"))

    def basename(self, path: str) -> str:
        return posixpath.basename(path.replace("\\", "/").rstrip("/"))
