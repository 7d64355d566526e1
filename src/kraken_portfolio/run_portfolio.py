# src/kraken_portfolio/run_portfolio.py
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from src.kraken_portfolio.config import DEFAULT_ENV, load_config
from src.kraken_portfolio.core.client import PortfolioClient
from src.kraken_portfolio.core.errors import PortfolioError
from src.kraken_portfolio.ui.display import Display

log = logging.getLogger("kraken_portfolio.run_portfolio")


# ============================================================
# LOGGING / ARGS
# ============================================================

def _setup_logging(debug: bool) -> None:
    # stderr: stdout belongs to the rendered table
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s",
        stream=sys.stderr,
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Live Kraken portfolio valuation in the terminal.")
    ap.add_argument("--env", default=None, help="Path to env file, must exist if given (default: .env, optional)")
    ap.add_argument("--config", default=None, help="Path to portfolio.yaml (default: $PORTFOLIO_CONFIG or config/portfolio.yaml)")
    ap.add_argument("--debug", action="store_true", help="Enable debug logging")
    return ap.parse_args(argv)


# ============================================================
# STREAM WORKER
# ============================================================

class StreamWorker(threading.Thread):
    """Runs client.stream() off the main thread so signals can close the client."""

    def __init__(self, client: PortfolioClient, display: Display):
        super().__init__(daemon=True, name="PortfolioStream")
        self.client = client
        self.display = display
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self.client.stream(self.display.render_portfolio)
        except PortfolioError as e:
            self.error = e
        except Exception as e:
            log.exception("stream worker crashed")
            self.error = e


# ============================================================
# MAIN
# ============================================================

def run(args: argparse.Namespace) -> int:
    cfg = load_config(
        env_path=args.env or DEFAULT_ENV,
        config_path=args.config,
        env_required=args.env is not None,
    )
    if cfg.config_path:
        log.info("Config: %s", cfg.config_path)

    client = PortfolioClient(
        cfg.credentials,
        rest_url=cfg.rest_url,
        ws_url=cfg.ws_url,
        timeout_sec=cfg.timeout_sec,
    )
    client.connect()

    display = Display()
    worker = StreamWorker(client, display)

    def _sig_handler(signum, _frame):
        log.warning("Received signal: %s", signal.Signals(signum).name)
        client.close()

    signal.signal(signal.SIGINT, _sig_handler)
    try:
        signal.signal(signal.SIGTERM, _sig_handler)
    except (AttributeError, ValueError):
        pass

    log.info("Connected to Kraken. Press Ctrl+C to exit.")
    display.render_portfolio(client.asset_values())
    worker.start()

    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    finally:
        client.close()

    if worker.error is not None:
        log.error("Error: %s", worker.error)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    _setup_logging(args.debug)

    try:
        code = run(args)
    except PortfolioError as e:
        log.error("Error: %s", e)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
