"""HTTP publisher that ships batches to a metrics ingestion API."""
from __future__ import annotations

from typing import Dict, Optional

import httpx

from minutebuf.config import PublisherConfig
from minutebuf.errors import PublishError
from minutebuf.metrics.aggregator import Batch

METRIC_DATA_ENDPOINT = "/metric-data"


class HttpPublisher:
    """Thin wrapper around the ingestion endpoint.

    Each batch is sent as one ``POST /metric-data`` request whose JSON body has
    the shape ``{"Namespace": str, "MetricData": [...]}``.  Credentials are sent
    as HTTP basic auth, the optional session token and the region travel in
    dedicated headers.
    """

    def __init__(
        self,
        config: PublisherConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        auth = None
        headers: Dict[str, str] = {}
        credentials = config.credentials
        if credentials is not None:
            auth = httpx.BasicAuth(credentials.access_key_id, credentials.secret_access_key)
            if credentials.session_token:
                headers["X-Session-Token"] = credentials.session_token
        if config.region:
            headers["X-Region"] = config.region
        self._client = httpx.Client(
            base_url=config.resolved_endpoint().rstrip("/"),
            timeout=config.request_timeout,
            auth=auth,
            headers=headers,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    def publish(self, batch: Batch) -> None:
        """Send ``batch`` and raise :class:`PublishError` unless it was accepted."""

        try:
            response = self._client.post(METRIC_DATA_ENDPOINT, json=batch.to_dict())
        except httpx.HTTPError as exc:
            raise PublishError(batch.namespace, str(exc), exc) from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PublishError(batch.namespace, str(exc), exc) from exc

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`."""

        self._client.close()

    def __enter__(self) -> "HttpPublisher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()
