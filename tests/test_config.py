from pathlib import Path

from repro.config import PROJECT_ROOT, load_config

_VARS = (
    "REPRO_HOST", "REPRO_LISTEN_HOST", "REPRO_PORT", "REPRO_CERT_DIR", "REPRO_SITE_DIR",
    "REPRO_LOG_PATH", "REPRO_SERVER_TIMEOUT", "REPRO_TEST_TIMEOUT_MS",
    "REPRO_EXPECT_TIMEOUT_MS", "REPRO_HEADLESS", "REPRO_ARTIFACT_DIR",
)


def test_defaults(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)

    cfg = load_config()

    assert cfg.base_url == "https://localhost:3456"
    assert cfg.cert_path == PROJECT_ROOT / "cert.pem"
    assert cfg.key_path == PROJECT_ROOT / "key.pem"
    assert cfg.cert_path.parent == cfg.key_path.parent
    assert cfg.server_timeout == 60
    assert (cfg.test_timeout_ms, cfg.expect_timeout_ms) == (60000, 10000)
    assert cfg.headless is True
    assert Path(cfg.site_dir) == PROJECT_ROOT / "site"


def test_default_store_ignores_working_directory(monkeypatch, tmp_path):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)

    cfg = load_config()

    assert cfg.cert_path.parent == PROJECT_ROOT
    assert cfg.cert_path.is_absolute() and Path(cfg.site_dir).is_absolute()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("REPRO_PORT", "8443")
    monkeypatch.setenv("REPRO_CERT_DIR", str(tmp_path))
    monkeypatch.setenv("REPRO_HEADLESS", "False")

    cfg = load_config()

    assert cfg.port == 8443
    assert cfg.cert_path == tmp_path / "cert.pem"
    assert cfg.headless is False


def test_server_command_carries_port_and_pair(monkeypatch, tmp_path):
    monkeypatch.setenv("REPRO_PORT", "4000")
    monkeypatch.setenv("REPRO_CERT_DIR", str(tmp_path))

    cmd = load_config().server_command

    assert cmd[1].endswith("main.py") and cmd[2] == "serve"
    assert cmd[cmd.index("-l") + 1] == "4000"
    assert cmd[cmd.index("--ssl-cert") + 1] == str(tmp_path / "cert.pem")
    assert cmd[cmd.index("--ssl-key") + 1] == str(tmp_path / "key.pem")
