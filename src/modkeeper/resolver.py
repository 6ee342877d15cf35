"""Content reference resolution.

Turns an item's content reference into bounded plain text. Schemes are tried
in fixed precedence: inline text, data URI, IPFS (via an ordered gateway
list), direct HTTP(S). Anything else is unsupported and resolves to ``None``
without touching the network. Every individual failure is absorbed here;
``resolve`` never raises.
"""
from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from urllib.parse import unquote

import httpx

from .redaction import redact_text
from .state_schema import ResolvedText

logger = logging.getLogger(__name__)

DEFAULT_IPFS_GATEWAYS = (
    "https://ipfs.io/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
)

_TEXTUAL_TYPES = ("text/", "application/json", "application/xml", "application/xhtml")


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    max_chars: int = 10_000
    timeout: float = 10.0
    ipfs_gateways: tuple[str, ...] = DEFAULT_IPFS_GATEWAYS
    inline_text_prefix: str = "meow:text:"
    content_index_url: str | None = None
    content_index_key: str | None = None


class ContentResolver:
    def __init__(self, config: ResolverConfig | None = None, client: httpx.Client | None = None):
        self.config = config or ResolverConfig()
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.timeout, follow_redirects=True)
        return self._client

    def resolve(self, ref: str | None, content_hash: str | None = None) -> ResolvedText | None:
        if not ref:
            return None
        try:
            resolved = self._dispatch(ref, content_hash)
        except Exception:  # noqa: BLE001
            logger.exception("unexpected error resolving %s", redact_text(ref[:120]))
            return None
        if resolved is None:
            return None
        return ResolvedText(
            text=resolved.text[: self.config.max_chars],
            scheme=resolved.scheme,
            endpoint=resolved.endpoint,
        )

    def _dispatch(self, ref: str, content_hash: str | None) -> ResolvedText | None:
        prefix = self.config.inline_text_prefix
        if prefix and ref.startswith(prefix):
            return self._resolve_inline(ref[len(prefix):], content_hash)
        if ref.startswith("data:"):
            return self._resolve_data_uri(ref)
        if ref.startswith("ipfs://"):
            return self._resolve_ipfs(ref)
        if ref.startswith(("http://", "https://")):
            text = self.fetch_text(ref)
            return ResolvedText(text, "http", ref) if text else None
        logger.info("unsupported content reference scheme: %s", redact_text(ref[:40]))
        return None

    # ------------------------------------------------------------------
    # Inline schemes
    # ------------------------------------------------------------------

    def _resolve_inline(self, payload: str, content_hash: str | None) -> ResolvedText | None:
        if not payload:
            return self._lookup_by_digest(content_hash)
        try:
            text = unquote(payload, errors="strict")
        except UnicodeDecodeError:
            # inline content is never dropped: keep it as written
            text = payload
        return ResolvedText(text, "inline")

    def _resolve_data_uri(self, ref: str) -> ResolvedText | None:
        header, sep, payload = ref[len("data:"):].partition(",")
        if not sep:
            return None
        if header.lower().endswith(";base64"):
            padded = payload.strip() + "=" * (-len(payload.strip()) % 4)
            try:
                raw = base64.b64decode(padded)
            except (binascii.Error, ValueError):
                logger.warning("data uri payload is not valid base64")
                return None
            return ResolvedText(raw.decode("utf-8", errors="replace"), "data")
        return ResolvedText(unquote(payload), "data")

    # ------------------------------------------------------------------
    # Network schemes
    # ------------------------------------------------------------------

    def _resolve_ipfs(self, ref: str) -> ResolvedText | None:
        cid_path = ref[len("ipfs://"):]
        if cid_path.startswith("ipfs/"):
            cid_path = cid_path[len("ipfs/"):]
        if not cid_path:
            return None
        for gateway in self.config.ipfs_gateways:
            url = gateway.rstrip("/") + "/" + cid_path
            text = self.fetch_text(url)
            if text:
                return ResolvedText(text, "ipfs", url)
        logger.warning("all %d ipfs gateways failed for %s", len(self.config.ipfs_gateways), ref)
        return None

    def fetch_text(self, url: str) -> str | None:
        """GET ``url`` and return at most ``max_chars`` of its body, or None.

        The timeout bounds the whole attempt, including a slow body. A
        non-textual content type is logged but still accepted, since gateways
        often mislabel content.
        """
        timeout = self.config.timeout
        byte_limit = self.config.max_chars * 4
        deadline = time.monotonic() + timeout
        try:
            with self.client.stream("GET", url, timeout=timeout) as response:
                if not response.is_success:
                    logger.info("fetch %s returned http %d", redact_text(url), response.status_code)
                    return None
                content_type = response.headers.get("content-type", "").lower()
                if content_type and not content_type.startswith(_TEXTUAL_TYPES):
                    logger.debug("accepting %s despite content-type %s", redact_text(url), content_type)

                chunks: list[bytes] = []
                size = 0
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= byte_limit:
                        break
                    if time.monotonic() > deadline:
                        logger.info("fetch %s exceeded %.1fs", redact_text(url), timeout)
                        return None
                body = b"".join(chunks)[:byte_limit]
                encoding = response.encoding or "utf-8"
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            logger.info("fetch %s failed: %s", redact_text(url), type(exc).__name__)
            return None

        try:
            text = body.decode(encoding, errors="replace")
        except LookupError:
            text = body.decode("utf-8", errors="replace")
        return text[: self.config.max_chars] or None

    def _lookup_by_digest(self, content_hash: str | None) -> ResolvedText | None:
        base_url = self.config.content_index_url
        if not base_url or not content_hash:
            return None
        url = base_url.rstrip("/") + "/content"
        headers = {}
        if self.config.content_index_key:
            headers["Authorization"] = f"Bearer {self.config.content_index_key}"
        try:
            response = self.client.get(
                url,
                params={"hash": content_hash},
                headers=headers,
                timeout=self.config.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("content index lookup failed: %s", type(exc).__name__)
            return None
        if not response.is_success:
            logger.info("content index returned http %d", response.status_code)
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text:
            return None
        return ResolvedText(text, "index", url)
