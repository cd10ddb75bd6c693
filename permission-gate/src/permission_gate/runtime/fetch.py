"""Remote fetch collaborator.

Downloads an artifact over HTTP(S) with optional basic or bearer credentials.
CI servers (GoCD in particular) answer an unauthenticated artifact request with
an HTML login page and status 200, so an HTML body that mentions
authentication/login/forbidden is classified as `AuthenticationError` rather
than being handed to an extractor.
"""

from __future__ import annotations

import logging
import re
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from permission_gate.errors import AuthenticationError, FetchError, InputError

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES: tuple[str, ...] = (".ipa", ".apk", ".aab")

_AUTH_MARKERS_RE = re.compile(r"authentication|login|unauthorized|forbidden", re.IGNORECASE)
_CONTENT_DISPOSITION_RE = re.compile(r"""filename\*?=(?:UTF-8'')?["']?([^"';]+)""", re.IGNORECASE)
_HTML_SNIFF_BYTES = 4096


@dataclass(frozen=True)
class Credentials:
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None

    @property
    def kind(self) -> Optional[str]:
        if self.username and self.password:
            return "basic"
        if self.token:
            return "token"
        return None

    def auth(self) -> Optional[httpx.BasicAuth]:
        if self.kind == "basic":
            return httpx.BasicAuth(str(self.username), str(self.password))
        return None

    def headers(self) -> dict[str, str]:
        if self.kind == "token":
            return {"Authorization": f"Bearer {self.token}"}
        return {}


@dataclass(frozen=True)
class TlsPolicy:
    insecure: bool = False
    ca_bundle: Optional[str] = None

    def verify(self) -> bool | ssl.SSLContext:
        if self.insecure:
            return False
        if self.ca_bundle:
            if not Path(self.ca_bundle).is_file():
                raise InputError(f"CA bundle not found: {self.ca_bundle}")
            return ssl.create_default_context(cafile=self.ca_bundle)
        return True

    def describe(self) -> str:
        if self.insecure:
            return "SSL bypass"
        if self.ca_bundle:
            return "custom CA"
        return "default CA"


def is_url(value: str) -> bool:
    return bool(re.match(r"^https?://", str(value or ""), flags=re.IGNORECASE))


def _has_supported_suffix(name: str) -> bool:
    return name.lower().endswith(SUPPORTED_SUFFIXES)


def artifact_filename(url: str, *, content_disposition: Optional[str] = None) -> str:
    """Pick a local file name that keeps the artifact's extension."""

    name = httpx.URL(url).path.rstrip("/").rsplit("/", 1)[-1]
    if _has_supported_suffix(name):
        return name

    if content_disposition:
        m = _CONTENT_DISPOSITION_RE.search(content_disposition)
        if m:
            candidate = Path(m.group(1).strip()).name
            if _has_supported_suffix(candidate):
                return candidate

    lowered = url.lower()
    for suffix in SUPPORTED_SUFFIXES:
        if suffix in lowered:
            return f"downloaded_app{suffix}"

    raise InputError(f"cannot determine artifact type (.ipa/.apk/.aab) for URL: {url}")


def _download_filename(
    requested_url: str, final_url: str, content_disposition: Optional[str]
) -> str:
    """Prefer the requested URL; fall back to the URL reached after redirects."""

    try:
        return artifact_filename(requested_url, content_disposition=content_disposition)
    except InputError:
        if final_url == requested_url:
            raise
        return artifact_filename(final_url, content_disposition=content_disposition)


def _looks_like_html(head: bytes, content_type: str) -> bool:
    if "text/html" in content_type.lower():
        return True
    lowered = head.lstrip().lower()
    return lowered.startswith(b"<!doctype html") or lowered.startswith(b"<html")


class RemoteFetcher:
    def __init__(
        self,
        *,
        credentials: Optional[Credentials] = None,
        tls: Optional[TlsPolicy] = None,
        timeout_s: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._credentials = credentials or Credentials()
        self._tls = tls or TlsPolicy()
        self._timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            auth=self._credentials.auth(),
            headers=self._credentials.headers(),
            verify=self._tls.verify(),
            timeout=self._timeout_s,
            follow_redirects=True,
            transport=self._transport,
        )

    def fetch(self, url: str, dest_dir: Path) -> Path:
        auth_kind = self._credentials.kind
        logger.info(
            "downloading %s (%s%s)",
            url,
            self._tls.describe(),
            f", {auth_kind} auth" if auth_kind else "",
        )
        if self._tls.insecure:
            logger.warning("TLS certificate verification disabled for %s", url)

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        try:
            with self._client() as client, client.stream("GET", url) as resp:
                if resp.status_code in (401, 403):
                    raise AuthenticationError(
                        f"authentication failed (HTTP {resp.status_code}) for {url}"
                    )
                if resp.status_code >= 400:
                    raise FetchError(f"download failed (HTTP {resp.status_code}) for {url}")

                filename = _download_filename(
                    url, str(resp.url), resp.headers.get("content-disposition")
                )
                out_path = dest_dir / filename
                content_type = resp.headers.get("content-type", "")
                with out_path.open("wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise FetchError(f"download failed for {url}: {e}") from e

        self._check_download(out_path, url=url, content_type=content_type)
        logger.debug("downloaded %s (%d bytes)", out_path, out_path.stat().st_size)
        return out_path

    def _check_download(self, path: Path, *, url: str, content_type: str) -> None:
        if not path.is_file() or path.stat().st_size == 0:
            path.unlink(missing_ok=True)
            raise FetchError(f"download failed or file is empty: {url}")

        with path.open("rb") as f:
            head = f.read(_HTML_SNIFF_BYTES)
        if not _looks_like_html(head, content_type):
            return

        body = path.read_text(encoding="utf-8", errors="replace")
        path.unlink(missing_ok=True)
        if _AUTH_MARKERS_RE.search(body):
            raise AuthenticationError(f"authentication failed - downloaded error page: {url}")
        raise FetchError(f"expected an app artifact but received an HTML page: {url}")
