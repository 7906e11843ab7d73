#!/usr/bin/env python3
"""
HTLC migration runner

Runs the numbered migrations in MIGRATIONS_DIR against RPC_URL, skipping the
ones already recorded as completed in DEPLOYMENT_FILE.
"""

import os
import sys
import logging
import argparse

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import ArtifactRegistry
from .config import MigrationConfig
from .deployer import Deployer
from .exceptions import ConfigurationError
from .registry import DeploymentRecord
from .runner import MigrationRunner

logger = logging.getLogger(__name__)


def configure_logging(log_file: str, verbose: bool = False) -> None:
    directory = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(directory, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def connect(config: MigrationConfig) -> Web3:
    """Initialize Web3 connection"""
    w3 = Web3(Web3.HTTPProvider(config.rpc_url))
    if config.poa_chain:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not w3.is_connected():
        raise ConfigurationError(f"Could not connect to RPC URL: {config.rpc_url}")
    logger.info(f"Connected to blockchain at {config.rpc_url}")
    return w3


def build_runner(config: MigrationConfig, w3: Web3) -> MigrationRunner:
    chain_id = config.chain_id
    if chain_id is None:
        chain_id = w3.eth.chain_id
    elif chain_id != w3.eth.chain_id:
        raise ConfigurationError(f"CHAIN_ID {chain_id} does not match node chain id {w3.eth.chain_id}")

    record = DeploymentRecord.load(config.deployment_file, chain_id)
    artifacts = ArtifactRegistry.from_config(config)
    deployer = Deployer(w3, config.private_key, artifacts, record, config)
    logger.info(f"Using deployer account: {deployer.account.address}")
    return MigrationRunner(deployer, config.migrations_dir)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="htlc-migrate", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--from", dest="from_number", type=int,
                        help="Run migrations starting from this number, ignoring the record")
    parser.add_argument("--to", dest="to_number", type=int,
                        help="Stop after this migration number")
    parser.add_argument("--reset", action="store_true",
                        help="Run all migrations from the beginning")
    parser.add_argument("--status", action="store_true",
                        help="List migrations and whether they have completed")
    parser.add_argument("--env-file", default=None, help="Path to the .env file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = MigrationConfig.from_env(args.env_file)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        configure_logging(config.log_file, args.verbose)
    except OSError as e:
        print(f"Error: cannot open log file {config.log_file}: {e}", file=sys.stderr)
        return 1

    try:
        w3 = connect(config)
        runner = build_runner(config, w3)

        if args.status:
            for migration, completed in runner.status():
                mark = "x" if completed else " "
                print(f"[{mark}] {migration.number}_{migration.name}")
            return 0

        runner.run(from_number=args.from_number, to_number=args.to_number, reset=args.reset)
    except KeyboardInterrupt:
        logger.info("Migration interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
