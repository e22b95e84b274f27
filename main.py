#!/usr/bin/env python3
"""Entry point for the bridge gas faucet service.

This module provides the main entry point for the faucet that runs
either in production (key from the ROFL app daemon) or local mode
(key from the environment).
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from gas_faucet.config import FaucetConfig
from gas_faucet.errors import EventPipelineError
from gas_faucet.gift_orchestrator import GiftOrchestrator
from gas_faucet.utils.rofl_utility import RoflUtility
from gas_faucet.utils.signer_utility import SignerUtility

ROFL_KEY_ID = "gas-faucet"


async def load_secret(config: FaucetConfig) -> str:
    """Return the faucet private key for the configured mode."""
    if config.local_mode:
        logger.debug("Using local private key (LOCAL MODE)")
        return config.private_key or ""

    logger.debug("Fetching faucet key from ROFL...")
    secret = await RoflUtility().fetch_key(ROFL_KEY_ID)
    logger.debug("Faucet key fetched successfully")
    return secret


async def main() -> None:
    """Main entry point for the gas faucet service.

    Parses startup arguments, loads configuration from environment,
    and runs the faucet until a fatal pipeline error.

    Raises:
        SystemExit: On configuration errors or fatal runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Bridge Gas Faucet - Top up native balance of bridge deposit recipients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  WS_SERVER_URL           - WebSocket RPC endpoint (feed and chain client)
  CHAIN_ID                - Chain ID used to sign gift transactions
  BRIDGE_CONTRACT_ADDRESS - Bridge contract emitting deposit events
  GIFT_AMOUNT             - Recipient balance floor in whole tokens
  PRIVATE_KEY             - Faucet private key (required with --local)
  LOG_LEVEL               - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--local",
        action="store_true",
        default=False,
        help="Run in local mode with the key from PRIVATE_KEY"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    logger.info(f"=== Bridge Gas Faucet Starting {'(LOCAL MODE)' if args.local else ''} ===")
    logger.info("Loading configuration from environment...")

    try:
        config: FaucetConfig = FaucetConfig.from_env(local_mode=args.local)
        config.log_config()

        signer = SignerUtility(await load_secret(config), config.server.chain_id)
        orchestrator: GiftOrchestrator = GiftOrchestrator.from_config(config, signer)
        await orchestrator.run()

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - WS_SERVER_URL: WebSocket RPC endpoint")
        logger.error("  - CHAIN_ID: Chain ID of the target chain")
        logger.error("  - BRIDGE_CONTRACT_ADDRESS: Bridge contract address")
        logger.error("  - GIFT_AMOUNT: Gift floor in whole tokens")
        if args.local:
            logger.error("  - PRIVATE_KEY: Required for local mode")
        sys.exit(1)

    except EventPipelineError as e:
        logger.critical(f"Event pipeline broken, exiting: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
