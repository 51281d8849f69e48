"""
Latency probing with ordered fallback.

Strategies are tried in order and the first success wins:

1. ICMP echo through the system ``ping`` binary
2. DNS resolution followed by a TCP connect

A failing strategy is logged and absorbed. If every strategy fails the
latency is reported as unknown (None), never as an error.
"""
from __future__ import annotations

import asyncio
import logging
import re
import socket
import sys
import time
from dataclasses import dataclass
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0
DEFAULT_TCP_PORT = 80

_PING_TIME_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)


@dataclass(frozen=True)
class ProbeResult:
    """Uniform outcome of one probe strategy"""

    ok: bool
    latency_ms: int | None = None
    reason: str | None = None

    @classmethod
    def success(cls, latency_ms: float) -> ProbeResult:
        return cls(ok=True, latency_ms=max(0, round(latency_ms)))

    @classmethod
    def failure(cls, reason: str) -> ProbeResult:
        return cls(ok=False, reason=reason)


class ProbeStrategy(Protocol):
    name: str

    async def run(self, host: str, port: int | None = None) -> ProbeResult: ...


def parse_ping_time(output: str) -> float | None:
    """Extract the first round-trip time (ms) from ping output."""
    match = _PING_TIME_RE.search(output)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def build_ping_command(host: str, timeout: float) -> list[str]:
    """One echo request with a reply timeout, per platform."""
    if sys.platform.startswith("win"):
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), host]
    if sys.platform == "darwin":
        return ["ping", "-c", "1", "-t", str(max(1, int(timeout))), host]
    return ["ping", "-c", "1", "-W", str(max(1, int(timeout))), host]


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


class IcmpProbe:
    """ICMP echo via the system ping command (needs one reply)."""

    name = "icmp"

    def __init__(self, timeout: float = PROBE_TIMEOUT_SECONDS):
        self.timeout = timeout

    async def run(self, host: str, port: int | None = None) -> ProbeResult:
        command = build_ping_command(host, self.timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError, OSError) as e:
            return ProbeResult.failure(f"ping unavailable: {e}")

        try:
            # Small grace period on top of ping's own reply timeout
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout + 1)
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            return ProbeResult.failure("ping timed out")
        except asyncio.CancelledError:
            _kill(proc)
            raise

        if proc.returncode != 0:
            return ProbeResult.failure(f"no reply (exit code {proc.returncode})")

        latency = parse_ping_time(stdout.decode(errors="replace"))
        if latency is None:
            return ProbeResult.failure("could not parse ping time")
        return ProbeResult.success(latency)


class TcpConnectProbe:
    """DNS lookup followed by a TCP connect.

    Latency is DNS time plus connect time. When the connect step errors the
    DNS time alone is reported; a refused port still proves the host answers.
    """

    name = "tcp"

    def __init__(self, timeout: float = PROBE_TIMEOUT_SECONDS, default_port: int = DEFAULT_TCP_PORT):
        self.timeout = timeout
        self.default_port = default_port

    async def run(self, host: str, port: int | None = None) -> ProbeResult:
        loop = asyncio.get_running_loop()
        port = port or self.default_port

        dns_start = time.perf_counter()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(host, port, type=socket.SOCK_STREAM),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            return ProbeResult.failure(f"DNS lookup failed: {str(e) or type(e).__name__}")
        dns_ms = (time.perf_counter() - dns_start) * 1000

        if not infos:
            return ProbeResult.failure("DNS lookup returned no addresses")
        address = infos[0][4][0]
        logger.debug(f"Resolved {host} to {address} in {dns_ms:.0f}ms")

        connect_start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"TCP connect to {address}:{port} failed ({str(e) or type(e).__name__}), using DNS time")
            return ProbeResult.success(dns_ms)

        connect_ms = (time.perf_counter() - connect_start) * 1000
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

        logger.debug(f"TCP ping {host}: DNS {dns_ms:.0f}ms + connect {connect_ms:.0f}ms")
        return ProbeResult.success(dns_ms + connect_ms)


class LatencyProber:
    """
    Measure latency to a host through an ordered chain of strategies.

    Usage:
        prober = LatencyProber()
        latency = await prober.probe("mc.example.com")  # int ms or None
    """

    def __init__(self, strategies: Sequence[ProbeStrategy] | None = None):
        self.strategies: list[ProbeStrategy] = (
            list(strategies) if strategies is not None else [IcmpProbe(), TcpConnectProbe()]
        )

    async def probe(self, host: str, port: int | None = None) -> int | None:
        """Return latency in ms, or None when every strategy failed."""
        for strategy in self.strategies:
            try:
                result = await strategy.run(host, port)
            except Exception as e:
                result = ProbeResult.failure(f"unexpected error: {e}")

            if result.ok:
                logger.info(f"Ping to {host} completed in {result.latency_ms}ms using {strategy.name}")
                return result.latency_ms

            logger.warning(f"{strategy.name} probe failed for {host}: {result.reason}")

        logger.warning(f"Could not measure latency to {host}")
        return None
