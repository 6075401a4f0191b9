"""
filecabinet - Command Line Entry Point
======================================

Selects exactly one operation per invocation and hands it to the batch
engine or the listing server.

Exit status:
    0  the requested operation ran, even if some targets failed
    1  a fatal problem stopped it before any file was touched
    2  invalid command line (from argparse)
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from filecabinet import __version__
from filecabinet.batch import (
    BatchEngine,
    BatchJob,
    ConsoleReporter,
    LoggingReporter,
    Operation,
)
from filecabinet.config import Config
from filecabinet.dashboard import ListingServer
from filecabinet.utils.exceptions import ConfigurationError, ErrorCode, VaultError
from filecabinet.utils.logging_config import setup_logging, get_logger, LoggingConfig

logger = get_logger(__name__)

PASSWORD_ENV = "FILECABINET_PASSWORD"


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="filecabinet",
        description="filecabinet - A relatively secure solution to managing scanned files."
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")

    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument(
        '--verify',
        metavar='DIR',
        help='Check every checksum sidecar in a directory'
    )
    actions.add_argument(
        '--encrypt', '-e',
        nargs='+',
        metavar='FILE',
        help='Encrypt files and write checksums for the containers'
    )
    actions.add_argument(
        '--decrypt', '-D',
        nargs='+',
        metavar='FILE',
        help='Decrypt encrypted containers'
    )
    actions.add_argument(
        '--normalize', '-n',
        nargs='+',
        metavar='FILE',
        help='Rename files to the canonical date_institution_title_page form'
    )
    actions.add_argument(
        '--serve', '-w',
        action='store_true',
        help='Launch the web listing server'
    )

    parser.add_argument(
        '--password-file', '-p',
        type=Path,
        metavar='PATH',
        help=f'File holding the vault password (default: ${PASSWORD_ENV})'
    )
    parser.add_argument(
        '--target-directory', '-d',
        type=Path,
        metavar='DIR',
        help='Directory served by --serve (default: ./)'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        metavar='PATH',
        help='YAML configuration file (default: ./filecabinet.yaml)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Sets the level of verbosity'
    )
    return parser


def parse_operation(args: argparse.Namespace) -> Operation:
    """Turn the mutually exclusive flags into one Operation value."""
    if args.verify is not None:
        return Operation.verify(args.verify)
    if args.encrypt:
        return Operation.encrypt(args.encrypt)
    if args.decrypt:
        return Operation.decrypt(args.decrypt)
    if args.normalize:
        return Operation.normalize(args.normalize)
    return Operation.serve()


def load_password(password_file: Optional[Path] = None) -> Optional[str]:
    """Read the vault password from a file or the environment.

    A single trailing newline in the file is ignored.

    Raises:
        ConfigurationError: If the password file cannot be read.
    """
    if password_file is None:
        return os.environ.get(PASSWORD_ENV) or None

    try:
        text = password_file.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read password file {password_file}: {e}",
            config_key="password_file",
            cause=e
        ) from e

    if text.endswith("\n"):
        text = text[:-1]
        if text.endswith("\r"):
            text = text[:-1]
    return text or None


def require_password(operation: Operation, password: Optional[str]) -> None:
    """Fail fast when the operation needs a password and none was given.

    Raises:
        ConfigurationError: If the password is missing or empty.
    """
    if operation.kind.requires_password and not password:
        raise ConfigurationError(
            f"{operation.kind.value} requires a non-empty password "
            f"(use --password-file or ${PASSWORD_ENV})",
            config_key="password",
            error_code=ErrorCode.MISSING_PASSWORD
        )


def _configure_logging(config: Config, verbose: int) -> None:
    """Install log handlers, reporting an unusable log directory as a config error."""
    try:
        setup_logging(LoggingConfig.from_section(config.logging, verbose))
    except OSError as e:
        raise ConfigurationError(
            f"Cannot open log file in {config.logging.log_dir}: {e.strerror or e}",
            config_key="logging.log_dir",
            cause=e
        ) from e


def run_batch(operation: Operation, password: Optional[str], config: Config) -> int:
    """Run a batch operation and print its report.

    Per-target failures do not change the exit status.
    """
    engine = BatchEngine(
        config=config,
        reporters=[ConsoleReporter(), LoggingReporter()],
    )
    try:
        engine.run(BatchJob(operation=operation, password=password))
    except VaultError as e:
        print(f"Error: {e.reason}", file=sys.stderr)
        return 1
    return 0


def run_server(config: Config, target_directory: Optional[Path]) -> int:
    """Serve the listing until interrupted."""
    if target_directory is not None:
        config.server.target_directory = target_directory
    server = ListingServer(config.server, suffix=config.security.encrypted_suffix)
    print(f"Serving {config.server.target_directory} at {server.url}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except OSError as e:
        print(f"Error: cannot start server: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI support."""
    parser = build_parser()
    args = parser.parse_args(argv)
    operation = parse_operation(args)

    try:
        config = Config.load(args.config)
        _configure_logging(config, args.verbose)
        password = load_password(args.password_file)
        require_password(operation, password)
    except ConfigurationError as e:
        print(f"Error: {e.reason}", file=sys.stderr)
        return 1

    if operation.kind.is_batch:
        return run_batch(operation, password, config)
    return run_server(config, args.target_directory)


if __name__ == "__main__":
    sys.exit(main())
