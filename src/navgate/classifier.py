# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Client for the remote URL classifier (``POST /url/check``).

Fail-open semantics: any transport or service failure (unreachable, timeout,
non-2xx, malformed body) yields ``FAIL_OPEN`` instead of raising.  Failures
are logged and emitted as telemetry; the caller never sees an exception.
Successful verdicts are returned exactly as the service supplied them.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from . import FAIL_OPEN, ClassificationResult, Confidence
from .config import DEFAULT_CLASSIFIER_TIMEOUT, DEFAULT_CLASSIFIER_URL
from .errors import ClassifierError, ClassifierResponseError
from .telemetry import emit, events

try:
    from importlib.metadata import version as _pkg_version

    _NAVGATE_VERSION = _pkg_version("navgate")
except Exception:
    _NAVGATE_VERSION = "unknown"

logger = logging.getLogger(__name__)

CHECK_PATH = "/url/check"
USER_AGENT = f"navgate/{_NAVGATE_VERSION}"


class UrlCheckResponse(BaseModel):
    """Wire shape of a classifier verdict."""

    model_config = ConfigDict(extra="ignore")

    url: str | None = Field(None, description="URL the service classified (echo)")
    is_malicious: StrictBool = Field(description="Service verdict")
    probability: float = Field(ge=0.0, le=1.0, allow_inf_nan=False, description="P(malicious)")
    confidence: str | None = Field(None, description="Opaque confidence label, e.g. high")


class ClassifierClient:
    """Async classifier client over a session-owned ``httpx.AsyncClient``.

    Pass ``client`` to share an existing ``AsyncClient`` (not closed by
    ``aclose()``), or ``transport`` to swap the network layer (tests).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CLASSIFIER_URL,
        *,
        timeout: float = DEFAULT_CLASSIFIER_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = base_url.rstrip("/") + CHECK_PATH
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self._request_count = 0
        self._fail_open_count = 0

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def request_count(self) -> int:
        """Number of classify() calls that reached the network layer."""
        return self._request_count

    @property
    def fail_open_count(self) -> int:
        return self._fail_open_count

    async def classify(self, url: str) -> ClassificationResult:
        """Classify *url*.  Never raises for service failures; returns FAIL_OPEN."""
        self._request_count += 1
        emit(events.CLASSIFIER_REQUEST, events.classifier_request(url=url))
        try:
            return await self._check(url)
        except ClassifierError as exc:
            logger.warning("Classifier unavailable, failing open: url=%s error=%s", url, exc)
            self._record_fail_open(url, exc)
        except Exception as exc:
            logger.warning("Classifier call crashed, failing open: url=%s", url, exc_info=True)
            self._record_fail_open(url, exc)
        return FAIL_OPEN

    async def _check(self, url: str) -> ClassificationResult:
        """One round-trip to the service.  Raises ClassifierError on any failure."""
        try:
            response = await self._client.post(self._endpoint, json={"url": url})
        except httpx.TimeoutException as exc:
            raise ClassifierError(f"classifier timed out after {self._timeout:.1f}s", url=url) from exc
        except httpx.HTTPError as exc:
            raise ClassifierError(f"classifier unreachable: {exc!r}", url=url) from exc

        if not response.is_success:
            raise ClassifierError(
                f"classifier returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            body = UrlCheckResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise ClassifierResponseError(
                f"malformed classifier response ({exc.error_count()} error(s))",
                url=url,
                status_code=response.status_code,
            ) from exc

        if body.url is not None and body.url != url:
            logger.debug("Classifier echoed a different URL: sent=%s got=%s", url, body.url)

        return ClassificationResult(
            is_malicious=body.is_malicious,
            probability=body.probability,
            confidence_label=body.confidence or Confidence.UNKNOWN.value,
        )

    def _record_fail_open(self, url: str, exc: Exception) -> None:
        self._fail_open_count += 1
        emit(
            events.CLASSIFIER_FAIL_OPEN,
            events.classifier_fail_open(
                url=url,
                error_type=type(exc).__name__,
                status_code=getattr(exc, "status_code", None) or 0,
            ),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ClassifierClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
