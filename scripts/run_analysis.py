#!/usr/bin/env python
"""Mood Radar CLI: stream one analysis run as NDJSON.

Runs either pipeline variant end to end and writes every stage event to
stdout as one JSON line. Logs go to stderr.

Variants:
- sentiment: emotions, concerns, narrative clusters, volatility, suggestions
- opportunity: creator opportunities, impact scores, playbook

Required environment (or .env):
- PERPLEXITY_API_KEY
- MINO_API_KEY, MINO_API_URL

Run with:
    python scripts/run_analysis.py "sustainable fashion" --region US --time-window "7 days"
    python scripts/run_analysis.py "home espresso" --variant opportunity \\
        --platform YouTube --audience "beginner baristas"
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from mood_radar.core.container import ApplicationContainer, get_container
from mood_radar.core.logging import get_logger, setup_logging
from mood_radar.core.redis import check_redis_connection
from mood_radar.services.pipeline import (
    EventStatus,
    PipelineVariant,
    StreamingPipeline,
    encode_event,
)
from mood_radar.services.providers import AnalysisRequest

# Load environment variables
load_dotenv()

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Stream a Mood Radar analysis as NDJSON.")
    parser.add_argument("topic", help="Topic or niche to analyze")
    parser.add_argument(
        "--variant",
        choices=[variant.value for variant in PipelineVariant],
        default=PipelineVariant.SENTIMENT.value,
        help="Pipeline variant (default: sentiment)",
    )
    parser.add_argument("--region", default="", help="Region or country focus")
    parser.add_argument("--time-window", default="", help='Look-back window, e.g. "7 days"')
    parser.add_argument("--source-focus", default="", help="Preferred kind of sources")
    parser.add_argument("--platform", default=None, help="Creator platform (opportunity)")
    parser.add_argument("--audience", default=None, help="Target audience (opportunity)")
    return parser.parse_args(argv)


def build_pipeline(variant: PipelineVariant) -> StreamingPipeline:
    """Get the pipeline for a variant from the container."""
    container = get_container()
    if variant == PipelineVariant.OPPORTUNITY:
        return container.opportunity_pipeline()
    return container.sentiment_pipeline()


async def check_snapshot_store(container: ApplicationContainer) -> bool:
    """Ping Redis when snapshots are stored there.

    Returns:
        False only if the redis backend is selected and unreachable
    """
    config = container.config()
    if config.snapshot_backend != "redis":
        return True
    return await check_redis_connection(container.redis())


async def run(args: argparse.Namespace) -> int:
    """Run the pipeline and print its events.

    Returns:
        Exit code (1 if the run ended with an error event or the snapshot
        store is unreachable)
    """
    request = AnalysisRequest(
        topic=args.topic,
        region=args.region,
        time_window=args.time_window,
        source_focus=args.source_focus,
        platform=args.platform,
        audience=args.audience,
    )
    container = get_container()
    if not await check_snapshot_store(container):
        logger.error("Snapshot store unreachable", backend="redis")
        return 1

    pipeline = build_pipeline(PipelineVariant(args.variant))

    failed = False
    try:
        async for event in pipeline.stream(request):
            sys.stdout.write(encode_event(event))
            sys.stdout.flush()
            failed = failed or event.status == EventStatus.ERROR
    finally:
        await container.http_client().close()

    logger.info("Run finished", variant=args.variant, failed=failed)
    return 1 if failed else 0


def main() -> None:
    setup_logging()
    args = parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
