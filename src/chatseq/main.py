"""Application entry point for the chatseq server."""

from chatseq.app import App
from chatseq.config import Config
from chatseq.logging import setup_logging
from chatseq.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
