"""Async client for the two-phase WebHDFS ``CREATE`` write.

Phase 1 asks the gateway where to write (``PUT ...?op=CREATE``, answered with
``307 Temporary Redirect``); phase 2 sends the bytes to the redirect target
(``PUT <Location>``, answered with ``201 Created``). Redirects are never
followed automatically, and nothing is retried here.
"""

import logging
import re

import httpx

from hdfsdrop.schemas.ingest import IngestConfig, UploadErrorKind

logger = logging.getLogger(__name__)

# Characters the gateway will not accept in a path segment.
_UNSAFE_CHARS = re.compile(r"[\[\]{}()<>*?|\"^%$#@!~`]")


def sanitize_name(name: str) -> str:
    """Replace every unsafe path character with ``_``."""
    return _UNSAFE_CHARS.sub("_", name)


def remote_path_for(remote_dir: str, name: str) -> str:
    return f"{remote_dir.rstrip('/')}/{sanitize_name(name)}"


class UploadError(Exception):
    """Base class for a failed upload. ``kind`` says which step failed."""

    kind: UploadErrorKind = UploadErrorKind.TRANSPORT

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoRedirectError(UploadError):
    kind = UploadErrorKind.NO_REDIRECT

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"Create request returned {status_code}, expected 307",
            status_code=status_code,
        )


class MissingLocationError(UploadError):
    kind = UploadErrorKind.MISSING_LOCATION

    def __init__(self) -> None:
        super().__init__("Create redirect carried no Location header", status_code=307)


class UploadRejectedError(UploadError):
    kind = UploadErrorKind.UPLOAD_REJECTED

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"Data write returned {status_code}, expected 201",
            status_code=status_code,
        )


class UploadTransportError(UploadError):
    kind = UploadErrorKind.TRANSPORT


class WebHdfsClient:
    """Async HTTP client for a WebHDFS-style gateway.

    Usage::

        async with WebHdfsClient(config) as client:
            remote_path = await client.upload("report.xml", data)
    """

    def __init__(
        self,
        config: IngestConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = config.remote_base_url.rstrip("/")
        self._remote_dir = config.remote_dir
        self._hdfs_user = config.hdfs_user
        self._internal_key = config.internal_key
        self._overwrite = config.overwrite
        self._send_user_param = config.send_user_param
        self._client = httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(
                config.read_timeout,
                connect=config.connect_timeout,
            ),
            transport=transport,
        )

    async def __aenter__(self) -> "WebHdfsClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def create_url(self, remote_path: str) -> str:
        return f"{self._base_url}{remote_path}"

    def create_params(self) -> dict[str, str]:
        params = {"op": "CREATE", "overwrite": "true" if self._overwrite else "false"}
        if self._send_user_param and self._hdfs_user:
            params["user.name"] = self._hdfs_user
        return params

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    async def request_location(self, remote_path: str) -> str:
        """Phase 1: ask the gateway for the data-node write URL.

        Raises:
            NoRedirectError: The gateway did not answer 307.
            MissingLocationError: The 307 carried no usable Location.
            UploadTransportError: The request never got a response.
        """
        headers = {}
        if self._internal_key:
            headers["Authorization"] = self._internal_key

        try:
            response = await self._client.put(
                self.create_url(remote_path),
                params=self.create_params(),
                headers=headers,
            )
        except httpx.TransportError as exc:
            raise UploadTransportError(f"Create request failed: {exc}") from exc

        if response.status_code != httpx.codes.TEMPORARY_REDIRECT:
            raise NoRedirectError(response.status_code)

        location = response.headers.get("location", "").strip()
        if not location:
            raise MissingLocationError()
        logger.debug("Create for %s redirected to %s", remote_path, location)
        return location

    async def write_data(self, location: str, content: bytes) -> None:
        """Phase 2: PUT the full content to the redirect target.

        Raises:
            UploadRejectedError: The target did not answer 201.
            UploadTransportError: The request never got a response.
        """
        headers = {"Content-Type": "application/octet-stream"}
        if self._hdfs_user:
            headers["Hdfs-User"] = self._hdfs_user

        try:
            response = await self._client.put(location, content=content, headers=headers)
        except httpx.TransportError as exc:
            raise UploadTransportError(f"Data write failed: {exc}") from exc

        if response.status_code != httpx.codes.CREATED:
            raise UploadRejectedError(response.status_code)

    async def upload(self, name: str, content: bytes) -> str:
        """Write ``content`` to ``remote_dir/<sanitized name>``.

        Returns:
            The remote path written.

        Raises:
            UploadError: One of its subclasses, depending on the failing step.
        """
        remote_path = remote_path_for(self._remote_dir, name)
        location = await self.request_location(remote_path)
        await self.write_data(location, content)
        logger.info("Wrote %s to %s", name, remote_path)
        return remote_path
