import argparse
import sys
from dotenv import load_dotenv

load_dotenv(override=True)

from repro.config import load_config
from repro.tls import GenerationError, ensure_certificates


def certs(args, config):
    cert_path = args.cert or config.cert_path
    key_path = args.key or config.key_path
    try:
        generated = ensure_certificates(cert_path, key_path)
    except (OSError, GenerationError) as e:
        print(f"Failed to generate SSL certificates: {e}", file=sys.stderr)
        return 1
    if generated:
        print(f"SSL certificates generated: {cert_path}, {key_path}")
    else:
        print("SSL certificates already exist")
    return 0


def serve(args, config):
    from repro.server import run_server

    try:
        run_server(
            port=args.listen,
            cert_path=args.ssl_cert,
            key_path=args.ssl_key,
            root=args.root or config.site_dir,
            host=args.host or config.listen_host,
            log_path=args.log or config.log_path,
        )
    except OSError as e:
        print(f"Server failed: {e}", file=sys.stderr)
        return 1
    return 0


def repro(args, config):
    from playwright.sync_api import Error as PlaywrightError, sync_playwright

    from repro.bootstrap import BootstrapError, web_server
    from repro.scenarios import reproduce_card_first, reproduce_wallet_first

    try:
        with web_server(config) as base_url, sync_playwright() as p:
            browser = p.chromium.launch(headless=config.headless)
            try:
                reports = []
                for scenario in (reproduce_wallet_first, reproduce_card_first):
                    context = browser.new_context(base_url=base_url, ignore_https_errors=True)
                    context.set_default_timeout(config.expect_timeout_ms)
                    context.set_default_navigation_timeout(config.test_timeout_ms)
                    try:
                        reports.append(scenario(context.new_page(), context, config.artifact_dir))
                    finally:
                        context.close()
            finally:
                browser.close()
    except (OSError, GenerationError, BootstrapError, PlaywrightError) as e:
        print(f"Reproduction environment failed: {e}", file=sys.stderr)
        return 2

    wallet_first, card_first = reports
    if wallet_first.bug_observed and not card_first.bug_observed:
        print("▸ Race reproduced: error only with Google Pay first.")
        return 0
    print("▸ Race not reproduced on this run.")
    return 1


def build_parser():
    parser = argparse.ArgumentParser(description="Checkout error 205001 reproduction harness")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("certs", help="generate cert.pem/key.pem unless both exist")
    p.add_argument("--cert", help="certificate path (default: $REPRO_CERT_DIR/cert.pem)")
    p.add_argument("--key", help="private key path (default: $REPRO_CERT_DIR/key.pem)")
    p.set_defaults(func=certs)

    p = sub.add_parser("serve", help="serve the reproduction page over HTTPS")
    p.add_argument("-l", "--listen", type=int, required=True, help="TCP port")
    p.add_argument("--ssl-cert", required=True)
    p.add_argument("--ssl-key", required=True)
    p.add_argument("--root", help="directory to serve (default: $REPRO_SITE_DIR)")
    p.add_argument("--host", help="bind address (default: $REPRO_LISTEN_HOST)")
    p.add_argument("--log", help="access log base name (default: $REPRO_LOG_PATH)")
    p.set_defaults(func=serve)

    p = sub.add_parser("repro", help="run both browser scenarios against a fresh server")
    p.set_defaults(func=repro)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = load_config()
    return args.func(args, config)

if __name__ == "__main__":
    sys.exit(main())
