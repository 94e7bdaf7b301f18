"""Shared fixtures: isolated certificate stores, free ports and a Chromium page."""

from __future__ import annotations

import socket
from pathlib import Path
from typing import Generator

import pytest

from repro.config import PROJECT_ROOT, Config, load_config
from repro.tls import ensure_certificates


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    return _free_port()


@pytest.fixture
def cert_pair(tmp_path: Path) -> tuple[Path, Path]:
    """A freshly provisioned certificate/key pair in a temp directory."""
    cert_path, key_path = tmp_path / "cert.pem", tmp_path / "key.pem"
    ensure_certificates(cert_path, key_path)
    return cert_path, key_path


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<html><body><div id='log-container'></div></body></html>")
    (root / "app.js").write_text("console.log('ok');")
    (root / "nested").mkdir()
    (root / "nested" / "index.html").write_text("nested")
    (tmp_path / "secret.txt").write_text("outside the site root")
    return root


@pytest.fixture
def repro_config(tmp_path: Path, free_port: int, site_dir: Path) -> Config:
    """Config with an empty certificate store and its own port."""
    store = tmp_path / "certs"
    store.mkdir()
    return Config(
        host="localhost",
        listen_host="127.0.0.1",
        port=free_port,
        cert_dir=str(store),
        site_dir=str(site_dir),
        log_path=str(tmp_path / "access.log"),
        server_timeout=30.0,
        test_timeout_ms=60000,
        expect_timeout_ms=10000,
        headless=True,
        artifact_dir=str(tmp_path),
    )


# --------------------------------------------------------------------------- #
# browser-marked tests only
# --------------------------------------------------------------------------- #


@pytest.fixture(scope="session")
def browser_env(tmp_path_factory) -> Generator[tuple[Config, str], None, None]:
    """Real reproduction page served over HTTPS for the whole session."""
    from repro.bootstrap import web_server

    cfg = load_config()
    cfg.cert_dir = str(tmp_path_factory.mktemp("certs"))
    cfg.site_dir = str(PROJECT_ROOT / "site")
    cfg.log_path = str(tmp_path_factory.mktemp("logs") / "access.log")
    cfg.port = _free_port()
    with web_server(cfg) as base_url:
        yield cfg, base_url


@pytest.fixture(scope="session")
def chromium(browser_env):
    from playwright.sync_api import sync_playwright

    cfg, _ = browser_env
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=cfg.headless)
        yield browser
        browser.close()


@pytest.fixture
def context(chromium, browser_env):
    cfg, base_url = browser_env
    ctx = chromium.new_context(base_url=base_url, ignore_https_errors=True)
    ctx.set_default_timeout(cfg.expect_timeout_ms)
    ctx.set_default_navigation_timeout(cfg.test_timeout_ms)
    yield ctx
    ctx.close()


@pytest.fixture
def page(context):
    return context.new_page()
