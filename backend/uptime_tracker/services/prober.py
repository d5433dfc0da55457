"""Prober service - one bounded-timeout HTTP GET per service, classified up/down."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from ..models.status_record import STATUS_UP, STATUS_DOWN

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000


@dataclass
class ProbeResult:
    """Result of a single probe."""
    status: str  # up, down
    response_time_ms: int
    status_code: Optional[int] = None
    details: Optional[str] = None


class ProberService:
    """Issues single GET requests and turns every outcome into a ProbeResult.
    
    A probe never raises: connection, DNS, TLS and timeout failures all
    classify as ``down`` with the elapsed time recorded. There are no
    retries here; the next check cycle is the retry.
    """
    
    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_ms = timeout_ms
        # Injected in tests (httpx.MockTransport); None uses the network
        self._transport = transport
    
    async def probe(self, url: str, timeout_ms: Optional[int] = None) -> ProbeResult:
        """GET ``url`` once; ``up`` iff a 2xx response arrives within the timeout."""
        effective_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        timeout = effective_ms / 1000
        start = time.monotonic()
        
        try:
            # wait_for bounds the whole exchange; httpx's timeout is per phase
            response = await asyncio.wait_for(self._get(url, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._down(start, f"Timed out after {effective_ms}ms")
        except httpx.ConnectError as e:
            return self._down(start, f"Connection error: {e}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._down(start, f"Request failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error probing {url}")
            return self._down(start, str(e))
        
        elapsed = self._elapsed_ms(start)
        if 200 <= response.status_code < 300:
            return ProbeResult(status=STATUS_UP, response_time_ms=elapsed, status_code=response.status_code)
        
        logger.debug(f"Probe {url}: HTTP {response.status_code}")
        return ProbeResult(
            status=STATUS_DOWN,
            response_time_ms=elapsed,
            status_code=response.status_code,
            details=f"HTTP {response.status_code}",
        )
    
    async def _get(self, url: str, timeout: float) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            return await client.get(url)
    
    def _down(self, start: float, details: str) -> ProbeResult:
        logger.debug(f"Probe failed: {details}")
        return ProbeResult(status=STATUS_DOWN, response_time_ms=self._elapsed_ms(start), details=details)
    
    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return max(0, int((time.monotonic() - start) * 1000))
