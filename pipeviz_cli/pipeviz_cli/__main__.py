"""Entry point for `python -m pipeviz_cli` and the `pipeviz` console script."""

from __future__ import annotations

from pipeviz_cli.app import app
from pipeviz_engine.config import load_settings
from pipeviz_engine.telemetry import configure_logging


def main() -> None:
    configure_logging(load_settings())
    app()


if __name__ == "__main__":
    main()
