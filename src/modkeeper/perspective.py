"""Perspective (comment analyzer) score provider.

Scores text for the attributes a policy references. When the service rejects
one requested attribute for the detected language, that attribute is dropped
and the request retried; every retry removes one attribute, so the loop runs
at most ``len(attributes)`` extra times and always terminates.
"""
from __future__ import annotations

import logging
import re

import httpx

from .providers import ProviderResult, ScoreMap, Unavailable, clamp_score
from .redaction import redact_text
from .state_schema import ProviderId

logger = logging.getLogger(__name__)

ANALYZE_URL = "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"

_UNSUPPORTED_ATTR_RE = re.compile(r"Attribute\s+([A-Z_]+)\s+does not support", re.IGNORECASE)


class PerspectiveProvider:
    provider_id = ProviderId.PERSPECTIVE

    def __init__(
        self,
        api_key: str | None,
        attributes: tuple[str, ...] | list[str],
        *,
        languages: tuple[str, ...] = (),
        max_chars: int = 5000,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        url: str = ANALYZE_URL,
    ):
        self.api_key = api_key or ""
        self.attributes = tuple(attributes)
        self.languages = tuple(languages)
        self.max_chars = max_chars
        self.timeout = timeout
        self.url = url
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def build_request(self, text: str, attributes: list[str]) -> dict:
        body: dict = {
            "comment": {"text": text[: self.max_chars]},
            "requestedAttributes": {attr: {} for attr in attributes},
            "doNotStore": True,
        }
        if self.languages:
            body["languages"] = list(self.languages)
        return body

    def score(self, text: str) -> ProviderResult:
        if not self.api_key:
            return Unavailable(self.provider_id, "no api key configured")
        if not self.attributes:
            return ScoreMap.zeroed(self.provider_id, self.attributes)

        remaining = list(self.attributes)
        while remaining:
            try:
                response = self.client.post(
                    self.url,
                    params={"key": self.api_key},
                    json=self.build_request(text, remaining),
                    timeout=self.timeout,
                )
            except httpx.HTTPError as exc:
                logger.warning("perspective request failed: %s", redact_text(str(exc)))
                return Unavailable(self.provider_id, f"request error: {type(exc).__name__}")

            if response.status_code == 200:
                return self._parse_scores(response)

            rejected = self._unsupported_attribute(response)
            if rejected is None or rejected not in remaining:
                return self._status_unavailable(response)

            logger.info("perspective: %s unsupported for detected language, retrying without it", rejected)
            remaining.remove(rejected)

        logger.info("perspective: no requested attribute supported for this language")
        return ScoreMap.zeroed(self.provider_id, self.attributes)

    def _parse_scores(self, response: httpx.Response) -> ProviderResult:
        try:
            data = response.json()
        except ValueError:
            return Unavailable(self.provider_id, "malformed response payload")
        if not isinstance(data, dict):
            return Unavailable(self.provider_id, "malformed response payload")
        attribute_scores = data.get("attributeScores") or {}
        if not isinstance(attribute_scores, dict):
            return Unavailable(self.provider_id, "malformed response payload")

        scores = {attr: 0.0 for attr in self.attributes}
        for attr, detail in attribute_scores.items():
            summary = detail.get("summaryScore") if isinstance(detail, dict) else None
            if isinstance(summary, dict):
                scores[attr] = clamp_score(summary.get("value"))
        return ScoreMap(provider=self.provider_id, scores=scores)

    @staticmethod
    def _unsupported_attribute(response: httpx.Response) -> str | None:
        if response.status_code != 400:
            return None
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return None
        if not isinstance(error, dict):
            return None

        for detail in error.get("details") or []:
            if not isinstance(detail, dict):
                continue
            lang_error = detail.get("languageNotSupportedByAttributeError")
            if isinstance(lang_error, dict) and lang_error.get("attribute"):
                return str(lang_error["attribute"]).upper()

        match = _UNSUPPORTED_ATTR_RE.search(str(error.get("message", "")))
        return match.group(1).upper() if match else None

    def _status_unavailable(self, response: httpx.Response) -> Unavailable:
        status = response.status_code
        if status in (401, 403):
            reason = "authentication failed"
        elif status == 429:
            reason = "rate limited"
        else:
            reason = f"http {status}"
        logger.warning("perspective unavailable: %s %s", reason, redact_text(response.text[:200]))
        return Unavailable(self.provider_id, reason)
