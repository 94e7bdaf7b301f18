"""
repro.bootstrap
~~~~~~~~~~~~~~~
Brings up the test environment around a browser session:

    provision certificates -> launch HTTPS server -> wait until reachable
    -> (caller runs its session) -> terminate server

The server is always a fresh child process; an address that already
answers is an error rather than something to reuse.
"""

from __future__ import annotations

import logging
import subprocess
import time
from contextlib import contextmanager
from typing import Iterator

import httpx

from .config import Config
from .tls import client_ssl_context, ensure_certificates

POLL_INTERVAL = 0.1
STOP_GRACE = 5.0

logger = logging.getLogger(__name__)


class BootstrapError(Exception):
    pass


def is_reachable(url: str, verify, timeout: float = 1.0) -> bool:
    """True once *url* answers with anything short of 404."""
    try:
        response = httpx.get(url, verify=verify, timeout=timeout)
    except httpx.TransportError:
        return False
    return response.status_code < 404


def wait_until_reachable(
    url: str,
    verify,
    timeout: float,
    proc: subprocess.Popen | None = None,
) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if proc is not None and proc.poll() is not None:
            raise BootstrapError(f"Server exited with status {proc.returncode} before {url} came up")
        if is_reachable(url, verify):
            return
        time.sleep(POLL_INTERVAL)
    raise BootstrapError(f"Timed out after {timeout:g}s waiting for {url}")


@contextmanager
def web_server(cfg: Config) -> Iterator[str]:
    """Provision certificates, run the static server and yield its base URL."""
    if ensure_certificates(cfg.cert_path, cfg.key_path):
        print(f"▸ Generated {cfg.cert_path} and {cfg.key_path}")

    # whatever holds the address counts, whichever certificate it presents
    if is_reachable(cfg.base_url, verify=False):
        raise BootstrapError(f"{cfg.base_url} is already in use; stop the running server first")

    logger.info("Launching %s", " ".join(cfg.server_command))
    proc = subprocess.Popen(cfg.server_command)
    try:
        wait_until_reachable(
            cfg.base_url, client_ssl_context(cfg.cert_path), cfg.server_timeout, proc
        )
        yield cfg.base_url
    finally:
        _stop(proc)


def _stop(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=STOP_GRACE)
    except subprocess.TimeoutExpired:
        logger.warning("Server pid %s ignored SIGTERM; killing", proc.pid)
        proc.kill()
        proc.wait()
