import argparse
import asyncio
import json
import logging
import sys
import time
from contextlib import asynccontextmanager

from account_fetcher import SolanaAccountFetcher
from config import settings
from connection_pool import HTTPSessionManager
from helius_client import HeliusClient, RpcError
from logger import configure_logging
from parse_data import parse_transfers_from_signature

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan():
    """Open the transaction source and account fetcher, closing both on exit"""
    session_manager = HTTPSessionManager.from_settings(settings)
    async with HeliusClient(
        settings.rpc_url,
        session_manager,
        commitment=settings.commitment,
        retry_attempts=settings.retry_attempts,
    ) as helius:
        async with SolanaAccountFetcher(
            settings.rpc_url,
            commitment=settings.commitment,
            timeout=settings.request_timeout,
        ) as fetcher:
            yield helius, fetcher


async def main(signature: str, include_native_transfers: bool) -> list:
    start = time.perf_counter()
    async with lifespan() as (helius, fetcher):
        transfers = await parse_transfers_from_signature(
            signature,
            include_native_transfers,
            source=helius,
            fetcher=fetcher,
        )
    logger.info(f"Parsed {signature} in {(time.perf_counter() - start) * 1000:.0f} ms")
    return [t.model_dump(mode="json", by_alias=True) for t in transfers]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solxfer",
        description="Extract wallet-to-wallet transfers from a Solana transaction",
    )
    parser.add_argument("signature", help="transaction signature")
    parser.add_argument(
        "--no-native",
        dest="include_native",
        action="store_false",
        default=settings.include_native_transfers,
        help="skip SOL transfers and account funding",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    return parser


def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, settings.log_file)

    try:
        results = asyncio.run(main(args.signature, args.include_native))
    except KeyboardInterrupt:
        logger.info("Terminated by user")
        return 130
    except RpcError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.critical(f"Fatal error: {str(e)}", exc_info=True)
        return 1

    json.dump(results, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(run())
