from dataclasses import dataclass
from pathlib import Path
import os
import sys
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

@dataclass
class Config:
    host: str
    listen_host: str
    port: int
    cert_dir: str
    site_dir: str
    log_path: str
    server_timeout: float
    test_timeout_ms: int
    expect_timeout_ms: int
    headless: bool
    artifact_dir: str

    @property
    def cert_path(self) -> Path:
        return Path(self.cert_dir) / "cert.pem"

    @property
    def key_path(self) -> Path:
        return Path(self.cert_dir) / "key.pem"

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"

    @property
    def server_command(self) -> list[str]:
        return [
            sys.executable, str(PROJECT_ROOT / "main.py"), "serve",
            "-l", str(self.port),
            "--ssl-cert", str(self.cert_path),
            "--ssl-key", str(self.key_path),
            "--root", self.site_dir,
            "--host", self.listen_host,
            "--log", self.log_path,
        ]

def load_config():
    load_dotenv(override=True)
    return Config(
        host=os.getenv("REPRO_HOST", "localhost"),
        listen_host=os.getenv("REPRO_LISTEN_HOST", "127.0.0.1"),
        port=int(os.getenv("REPRO_PORT", 3456)),
        cert_dir=os.getenv("REPRO_CERT_DIR", str(PROJECT_ROOT)),
        site_dir=os.getenv("REPRO_SITE_DIR", str(PROJECT_ROOT / "site")),
        log_path=os.getenv("REPRO_LOG_PATH", "access.log"),
        server_timeout=float(os.getenv("REPRO_SERVER_TIMEOUT", 60)),
        test_timeout_ms=int(os.getenv("REPRO_TEST_TIMEOUT_MS", 60000)),
        expect_timeout_ms=int(os.getenv("REPRO_EXPECT_TIMEOUT_MS", 10000)),
        headless=os.getenv("REPRO_HEADLESS", "true").lower() == "true",
        artifact_dir=os.getenv("REPRO_ARTIFACT_DIR", "."),
    )
