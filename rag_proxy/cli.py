"""
Command-line entry point.

Subcommands:
    index   Index new or changed files from the data source directory
    proxy   Serve the RAG proxy (or a plain passthrough) with uvicorn
    reset   Delete the Qdrant collection and clear the file tracker

Dependencies: argparse, uvicorn, rag_proxy.configs, rag_proxy.core, rag_proxy.api
System role: Process entry point
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from rag_proxy import __version__
from rag_proxy.api import create_app
from rag_proxy.boundary.vdb import QdrantVectorStoreClient
from rag_proxy.configs import DEFAULT_CONFIG_PATH, Settings, load_settings
from rag_proxy.core.document_processing import DocumentPipeline
from rag_proxy.core.document_processing.models import FileStatus
from rag_proxy.core.exceptions import RagProxyException
from rag_proxy.observability import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the rag-proxy CLI."""
    parser = argparse.ArgumentParser(
        prog="rag-proxy",
        description="Retrieval-augmented proxy for OpenAI-compatible chat completions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Index documents (only new or changed files)
  rag-proxy index --config config.toml

  # Serve the proxy on the configured host and port
  rag-proxy proxy

  # Forward requests without retrieval
  rag-proxy proxy --passthrough --port 3001
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parent = argparse.ArgumentParser(add_help=False)
    config_parent.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the TOML configuration file (default: {DEFAULT_CONFIG_PATH})",
    )

    index_parser = subparsers.add_parser(
        "index", parents=[config_parent], help="Index documents into Qdrant"
    )
    index_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-index every file even when unchanged",
    )

    proxy_parser = subparsers.add_parser(
        "proxy", parents=[config_parent], help="Run the proxy server"
    )
    proxy_parser.add_argument(
        "--passthrough",
        action="store_true",
        help="Forward requests unchanged (no retrieval, no context injection)",
    )
    proxy_parser.add_argument("--host", default=None, help="Bind address (overrides config)")
    proxy_parser.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")

    subparsers.add_parser(
        "reset", parents=[config_parent], help="Delete the collection and clear the tracker"
    )
    return parser


def run_index(settings: Settings, force: bool = False) -> int:
    """Run the indexing pipeline once."""
    with DocumentPipeline(settings) as pipeline:
        report = pipeline.run(force=force)
    if report.count(FileStatus.FAILED):
        logger.warning(f"{report.count(FileStatus.FAILED)} file(s) failed to index")
    return 0


def run_proxy(
    settings: Settings,
    passthrough: bool = False,
    host: str | None = None,
    port: int | None = None,
) -> int:
    """Serve the proxy until interrupted."""
    app = create_app(settings, passthrough=passthrough)
    uvicorn.run(
        app,
        host=host or settings.rag_proxy.host,
        port=port or settings.rag_proxy.port,
        log_config=None,
    )
    return 0


def run_reset(settings: Settings) -> int:
    """Delete the collection (a missing one is fine) and reset the tracker to {}."""
    collection = settings.qdrant.collection
    with QdrantVectorStoreClient(settings.qdrant) as client:
        if client.delete_collection(collection):
            logger.info(f"Deleted collection: {collection}")
        else:
            logger.info(f"Collection did not exist: {collection}")

    tracker_path = Path(settings.indexing.file_tracker_path)
    tracker_path.parent.mkdir(parents=True, exist_ok=True)
    tracker_path.write_text("{}", encoding="utf-8")
    logger.info(f"Cleared tracker file: {tracker_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging()
    try:
        settings = load_settings(args.config)
        configure_logging(settings.log_level)

        if args.command == "index":
            return run_index(settings, force=args.force)
        if args.command == "proxy":
            return run_proxy(settings, args.passthrough, args.host, args.port)
        return run_reset(settings)
    except RagProxyException as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning(f"{args.command} interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
