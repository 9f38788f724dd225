"""
Network Probe

Runs the network-observable part of the catalog from a plain process:

  DNS / CDN / CNAME / WebSocket
      Resolve the host through the configured resolver.  NXDOMAIN, an empty
      answer, a refusal, a timeout or a sinkhole address (0.0.0.0, ::, …)
      means a filter stepped in.  For CNAME tests the canonical name the
      resolver followed is recorded, so a cloaked tracker is visible in the
      report.

  Script / Pixel / API
      Request the resource over HTTPS with requests.  A connection failure
      or timeout means blocked; any HTTP response at all, even an error
      status, means the request got through.

  HTTP ETags
      HEAD a known page and check whether the ETag header survived.

Everything else in the catalog (DOM bait, canvas, WebGL, WebRTC, storage
APIs, …) needs a live browser page and is reported as Unsupported.  For the
same reason this probe contributes no browser ad-block checks to the
detection phase.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Optional
from urllib.parse import urlparse

import dns.asyncresolver
import dns.exception
import dns.resolver
import requests

from ..core.detector import Check
from ..core.types import BlockType, ProbeMethod, ProbeOutcome
from .base import BaseProbe, Handler

log = logging.getLogger(__name__)


@dataclass
class Lookup:
    """Result of resolving one host."""
    host:      str
    addresses: list[str] = field(default_factory=list)
    canonical: str = ""
    error:     str = ""

    def sinkholed(self, sinkholes: list[str]) -> bool:
        return any(ip in sinkholes for ip in self.addresses)

    def blocked(self, sinkholes: list[str]) -> bool:
        return bool(self.error) or self.sinkholed(sinkholes)


class NetworkProbe(BaseProbe):
    name = "Network"

    def handlers(self) -> dict[ProbeMethod, Handler]:
        return {
            ProbeMethod.DNS:       self._check_dns,
            ProbeMethod.CDN:       self._check_dns,
            ProbeMethod.CNAME:     self._check_cname,
            ProbeMethod.WEBSOCKET: self._check_websocket,
            ProbeMethod.SCRIPT:    partial(self._check_resource, "/test.js"),
            ProbeMethod.PIXEL:     partial(self._check_resource, "/test.gif"),
            ProbeMethod.API:       self._check_api,
            ProbeMethod.ETAGS:     self._check_etag,
        }

    # ── test handlers ─────────────────────────────────────────────────────────

    async def _check_dns(self, target: str) -> ProbeOutcome:
        lookup = await self._resolve(target, self.config.probe_timeout)
        return self._classify(lookup)

    async def _check_cname(self, target: str) -> ProbeOutcome:
        lookup = await self._resolve(target, self.config.probe_timeout)
        outcome = self._classify(lookup)
        if lookup.canonical and lookup.canonical != lookup.host:
            chain = f"{lookup.host} → CNAME {lookup.canonical}"
            detail = f"{chain}; {outcome.detail}" if outcome.detail else chain
            return ProbeOutcome(blocked=outcome.blocked,
                                block_type=outcome.block_type,
                                error=outcome.error,
                                detail=detail)
        return outcome

    async def _check_websocket(self, target: str) -> ProbeOutcome:
        host = urlparse(target).hostname or target
        return await self._check_dns(host)

    async def _check_resource(self, path: str, target: str) -> ProbeOutcome:
        return await self._check_http(f"https://{target}{path}", "GET")

    async def _check_api(self, target: str) -> ProbeOutcome:
        return await self._check_http(f"https://{target}/api/test", "HEAD")

    async def _check_etag(self, target: str) -> ProbeOutcome:
        # the target is a synthetic id; the ETag is checked on a real page
        try:
            status, etag = await asyncio.to_thread(
                self._fetch, self.config.etag_url, "HEAD",
                self.config.probe_timeout)
        except requests.RequestException as exc:
            return self._allowed(error=_describe(exc))
        if not etag:
            return self._blocked(BlockType.OTHER, detail="ETag Stripped")
        return self._allowed(detail=f"HTTP {status}, ETag {etag}")

    # ── detection phase ───────────────────────────────────────────────────────

    def dns_checks(self) -> list[Check]:
        return [partial(self._ad_endpoint_blocked, domain, path)
                for domain, path in self.config.dns_detection_targets]

    def provider_patterns(self) -> list[tuple[str, Check]]:
        return [
            ("Pi-hole or Unbound",
             partial(self._null_answer, self.config.pihole_pattern_domain)),
            ("AdGuard Home",
             partial(self._all_blocked, self.config.adguard_pattern_domains)),
        ]

    async def _ad_endpoint_blocked(self, domain: str, path: str) -> bool:
        """
        A known ad endpoint is blocked if DNS refuses it or HTTPS cannot reach
        it.  A timeout on either side proves nothing and votes negative.
        """
        timeout = self.config.detection_timeout
        lookup = await self._resolve(domain, timeout)
        if lookup.error == "Timeout":
            return False   # slow resolver: inconclusive
        if lookup.blocked(self.config.sinkhole_addresses):
            return True
        try:
            await asyncio.to_thread(self._fetch, f"https://{domain}{path}",
                                    "HEAD", timeout)
        except requests.Timeout:
            return False   # still trying to load: inconclusive
        except requests.RequestException:
            return True
        return False

    async def _null_answer(self, domain: str) -> bool:
        lookup = await self._resolve(domain, self.config.detection_timeout)
        return lookup.sinkholed(self.config.sinkhole_addresses)

    async def _all_blocked(self, domains: list[str]) -> bool:
        lookups = await asyncio.gather(
            *(self._resolve(d, self.config.detection_timeout) for d in domains))
        return all(l.blocked(self.config.sinkhole_addresses) for l in lookups)

    # ── DNS / HTTP primitives ─────────────────────────────────────────────────

    async def _resolve(self, host: str, timeout: float) -> Lookup:
        if self.config.resolver:
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.nameservers = [self.config.resolver]
        else:
            resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = timeout

        try:
            answer = await resolver.resolve(host, "A")
        except dns.resolver.NXDOMAIN:
            return Lookup(host, error="NXDOMAIN")
        except dns.resolver.NoAnswer:
            return Lookup(host, error="No answer")
        except dns.resolver.NoNameservers:
            return Lookup(host, error="Refused by resolver")
        except dns.exception.Timeout:
            return Lookup(host, error="Timeout")
        except dns.exception.DNSException as exc:
            return Lookup(host, error=_describe(exc))

        return Lookup(
            host=host,
            addresses=sorted(rdata.address for rdata in answer),
            canonical=answer.canonical_name.to_text(omit_final_dot=True),
        )

    def _classify(self, lookup: Lookup) -> ProbeOutcome:
        if lookup.error:
            log.debug("%s: DNS error %s", lookup.host, lookup.error)
            return self._blocked(BlockType.NETWORK, error=lookup.error)
        addresses = ", ".join(lookup.addresses)
        if lookup.sinkholed(self.config.sinkhole_addresses):
            log.debug("%s: sinkholed to %s", lookup.host, addresses)
            return self._blocked(BlockType.NETWORK, error="Sinkholed",
                                 detail=addresses)
        return self._allowed(detail=addresses)

    async def _check_http(self, url: str, method: str) -> ProbeOutcome:
        try:
            status, _ = await asyncio.to_thread(
                self._fetch, url, method, self.config.probe_timeout)
        except requests.RequestException as exc:
            log.debug("%s %s: %s", method, url, exc)
            return self._blocked(BlockType.NETWORK, error=_describe(exc))
        return self._allowed(detail=f"HTTP {status}")

    def _fetch(self, url: str, method: str,
               timeout: float) -> tuple[int, Optional[str]]:
        with requests.request(method, url, timeout=timeout,
                              allow_redirects=False, stream=True,
                              headers={"User-Agent": self.config.user_agent}) as resp:
            return resp.status_code, resp.headers.get("ETag")


def _describe(exc: Exception) -> str:
    """Short, single-line error text for reports."""
    if isinstance(exc, requests.Timeout):
        return "Timeout"
    if isinstance(exc, requests.ConnectionError):
        return "Connection failed"
    text = str(exc).strip().splitlines()
    return text[0] if text else type(exc).__name__
