# metabase_mcp/services/upstream.py
import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from fastapi import Depends

from metabase_mcp.core.config import Settings, get_settings
from metabase_mcp.core.errors import (
    NotConfigured,
    Upstream,
    UpstreamRejected,
    UpstreamUnreachable,
)

logger = logging.getLogger(__name__)


class UpstreamClient:
    """
    One outbound JSON call per method call, to Metabase or to the OpenAI API.
    No retries, no caching; the only bound on a call is settings.upstream_timeout.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        # tests pass httpx.MockTransport here
        self._transport = transport

    def _target(self, upstream: Upstream) -> Tuple[str, Dict[str, str]]:
        s = self.settings
        headers = {"Content-Type": "application/json"}
        if upstream is Upstream.METABASE:
            if not s.metabase_configured:
                raise NotConfigured(upstream, "Metabase not configured (METABASE_URL / METABASE_API_KEY).")
            headers["X-Metabase-Session"] = s.metabase_api_key
            return s.metabase_url.rstrip("/"), headers
        if not s.openai_api_key:
            raise NotConfigured(upstream, "OpenAI not configured (OPENAI_API_KEY).")
        headers["Authorization"] = f"Bearer {s.openai_api_key}"
        return (s.openai_base_url or "").rstrip("/"), headers

    async def request(
        self,
        upstream: Upstream,
        path: str,
        method: str = "GET",
        json: Any = None,
    ) -> Any:
        base, headers = self._target(upstream)
        url = path if path.startswith(("http://", "https://")) else f"{base}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.settings.upstream_timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("[%s] timed out after %ss: %s %s", upstream.value, self.settings.upstream_timeout, method, url)
            raise UpstreamUnreachable(upstream, f"{upstream.value} request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.warning("[%s] cannot connect: %s", upstream.value, e)
            raise UpstreamUnreachable(upstream, f"cannot reach {upstream.value}: {e}") from e

        if not resp.is_success:
            details = _body_of(resp)
            logger.warning("[%s] bad status %s: %s", upstream.value, resp.status_code, str(details)[:200])
            raise UpstreamRejected(
                upstream,
                f"{upstream.value} HTTP {resp.status_code}",
                details=details,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamRejected(
                upstream,
                f"{upstream.value} returned a non-JSON body",
                details=resp.text[:500],
                status_code=resp.status_code,
            ) from e

    async def call_metabase(self, path: str, method: str = "GET", data: Any = None) -> Any:
        return await self.request(Upstream.METABASE, path, method=method, json=data)

    async def call_openai(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self.request(Upstream.OPENAI, path, method="POST", json=payload)


def _body_of(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


def get_upstream_client(settings: Settings = Depends(get_settings)) -> UpstreamClient:
    return UpstreamClient(settings)
