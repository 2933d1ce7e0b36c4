import argparse
import logging
import sys

from .app import create_app
from .config import ReaderConfig
from .errors import ConfigError

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="shelfreader",
        description="Serve the book reader with page translation and a reading assistant.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on (default: %(default)s)")
    parser.add_argument("--debug", action="store_true", help="Run Flask in debug mode")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: %(default)s)",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = ReaderConfig.from_env()
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2
    if not config.functions_url:
        logger.warning("SHELFREADER_FUNCTIONS_URL is not set; translation and chat will fail")

    app = create_app(config)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
