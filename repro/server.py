"""
repro.server
~~~~~~~~~~~~
Non-blocking static file server over HTTPS for the reproduction page.
"""

from __future__ import annotations

import asyncio
import mimetypes
import ssl
import time
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlsplit

from .logger import AccessLogger
from .tls import server_ssl_context

CRLF = b"\r\n"
MAX_HEAD = 65_536
INDEX = "index.html"


def run_server(
    port: int,
    cert_path: str | Path,
    key_path: str | Path,
    root: str | Path,
    host: Optional[str] = None,
    log_path: str | Path = "access.log",
) -> None:
    server = StaticServer(port, cert_path, key_path, root, host=host, log_path=log_path)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        print("\n▸ Server shut down.")
    finally:
        server.logger.close()


class StaticServer:
    def __init__(
        self,
        port: int,
        cert_path: str | Path,
        key_path: str | Path,
        root: str | Path,
        host: Optional[str] = None,
        log_path: str | Path = "access.log",
        console_log: bool = True,
    ) -> None:
        self.port = port
        self.host = host
        self.cert_path = Path(cert_path)
        self.key_path = Path(key_path)
        self.root = Path(root).resolve()
        self.logger = AccessLogger(log_path, console=console_log)

    async def start(self) -> asyncio.AbstractServer:
        ssl_ctx = server_ssl_context(self.cert_path, self.key_path)
        return await asyncio.start_server(
            self._handle_client,
            host=self.host,
            port=self.port,
            ssl=ssl_ctx,
        )

    async def serve_forever(self) -> None:
        server = await self.start()

        bind_str = ", ".join(str(s.getsockname()) for s in server.sockets)
        print(f"▸ Serving {self.root} on {bind_str}  (cert={self.cert_path})")

        async with server:
            await server.serve_forever()

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        start_ts = time.time()
        peer = writer.get_extra_info("peername")
        peer_ip = peer[0] if peer else "-"
        method, target = "-", "-"

        try:
            req_line, _headers = await _read_request_head(reader)
            method, target, _ = _parse_request_line(req_line)
            if method not in ("GET", "HEAD"):
                raise HTTPError(405, "Method Not Allowed")

            path = self._resolve(target)
            body = path.read_bytes()
            ctype = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            await _send_response(
                writer, 200, body, ctype, include_body=(method == "GET")
            )
            self.logger.request(
                peer_ip, method, target, 200, len(body),
                int((time.time() - start_ts) * 1000),
            )

        except HTTPError as e:
            try:
                await _send_response(writer, e.status, e.msg.encode())
            except OSError:
                pass
            self.logger.error(peer_ip, method, target, e.status, e.msg)
        except (ConnectionError, asyncio.IncompleteReadError, ssl.SSLError):
            pass
        except OSError as e:
            try:
                await _send_response(writer, 500, b"Internal Server Error")
            except OSError:
                pass
            self.logger.error(peer_ip, method, target, 500, str(e))
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except OSError:
                pass

    def _resolve(self, target: str) -> Path:
        """Map a request target onto a file under the site root."""
        rel = unquote(urlsplit(target).path).lstrip("/")
        try:
            path = (self.root / rel).resolve()
        except (OSError, ValueError):
            raise HTTPError(404, "Not Found") from None
        if not path.is_relative_to(self.root):
            raise HTTPError(404, "Not Found")
        if path.is_dir():
            path = path / INDEX
        if not path.is_file():
            raise HTTPError(404, "Not Found")
        return path


class HTTPError(Exception):
    def __init__(self, status: int, msg: str):
        self.status = status
        self.msg = msg
        super().__init__(f"{status} {msg}")


async def _read_request_head(reader: asyncio.StreamReader) -> Tuple[bytes, Dict[str, str]]:
    head = b""
    while True:
        try:
            line = await reader.readline()
        except ValueError:  # line longer than the stream limit
            raise HTTPError(400, "Bad Request: header line too long") from None
        if not line:
            raise HTTPError(400, "Bad Request: EOF before headers complete")
        head += line
        if len(head) > MAX_HEAD:
            raise HTTPError(400, "Bad Request: head too large")
        if line == CRLF:
            break

    lines = head.split(CRLF)[:-1]
    if not lines or not lines[0]:
        raise HTTPError(400, "Bad Request: empty head")

    req_line = lines[0]
    hdrs = {}
    for raw in lines[1:]:
        if b":" in raw:
            k, v = raw.split(b":", 1)
            try:
                hdrs[k.decode().strip().lower()] = v.decode().strip()
            except UnicodeDecodeError:
                raise HTTPError(400, "Bad Request: undecodable header") from None
    return req_line, hdrs


def _parse_request_line(line: bytes) -> Tuple[str, str, str]:
    try:
        method, target, version = line.decode().strip().split()
    except ValueError:  # includes UnicodeDecodeError
        raise HTTPError(400, "Bad Request: malformed request-line")
    return method.upper(), target, version


_REASONS = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


async def _send_response(
    writer: asyncio.StreamWriter,
    status: int,
    body: bytes = b"",
    content_type: str = "text/plain; charset=utf-8",
    include_body: bool = True,
) -> None:
    reason = _REASONS.get(status, "Error")
    if content_type.startswith("text/") and "charset" not in content_type:
        content_type += "; charset=utf-8"
    head = f"HTTP/1.1 {status} {reason}\r\n"
    if status == 405:
        head += "Allow: GET, HEAD\r\n"
    head += (
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Cache-Control: no-store\r\n"
        "Connection: close\r\n\r\n"
    )
    writer.write(head.encode() + (body if include_body else b""))
    await writer.drain()
