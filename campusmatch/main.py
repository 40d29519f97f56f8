"""Command-line entry point for the campusmatch matching pipeline."""

import argparse
import json
import sys
import time
from dataclasses import asdict, dataclass
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from campusmatch.analysis import AnalyzerClient, TextAnalyzer
from campusmatch.config.environment import EnvironmentConfig
from campusmatch.config.exceptions import ConfigurationError
from campusmatch.config.loader import load_config
from campusmatch.config.models import AppConfig, ChannelType
from campusmatch.logging import get_logger
from campusmatch.logging.config import configure_logging
from campusmatch.matching import (
    HashingEmbedder,
    MatchResolver,
    SignalExtractor,
    SqlMatchStore,
    SqlProfileDirectory,
    build_scorer,
)
from campusmatch.matching.exceptions import MatchingError
from campusmatch.notifications import (
    MessageChannel,
    MockChannel,
    NotificationGate,
    SqlNotificationMarkerStore,
    TemplateRenderer,
    WebhookChannel,
)
from campusmatch.persistence.database import close_database, init_database
from campusmatch.pipeline import BulkOrchestrator, MatchingService, SweepResult
from campusmatch.scheduler import SweepDispatcher
from campusmatch.utils.rate_limit import RateLimiter

logger = get_logger(__name__, component="cli")


@dataclass
class Runtime:
    """Wired components for one process."""

    resolver: MatchResolver
    gate: NotificationGate
    orchestrator: BulkOrchestrator
    dispatcher: SweepDispatcher
    service: MatchingService


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_analyzer(app_config: AppConfig, env_config: EnvironmentConfig) -> TextAnalyzer:
    """Analyzer backed by the LLM API, or heuristic-only when disabled or keyless."""
    settings = app_config.analysis
    if not settings.enabled:
        logger.info(
            "Text analysis API disabled, using keyword heuristics",
            extra={"event": "analysis.disabled"},
        )
        return TextAnalyzer()
    if not env_config.analyzer_api_key:
        logger.warning(
            "No analyzer API key configured, using keyword heuristics",
            extra={"event": "analysis.no_api_key"},
        )
        return TextAnalyzer()

    client = AnalyzerClient(
        api_url=settings.api_url,
        api_key=env_config.analyzer_api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.request_timeout,
        api_version=settings.api_version,
        rate_limiter=RateLimiter.from_interval(settings.min_call_interval_seconds),
    )
    return TextAnalyzer(client)


def build_channel(app_config: AppConfig, env_config: EnvironmentConfig) -> MessageChannel:
    if app_config.notifications.channel == ChannelType.MOCK.value:
        return MockChannel()
    return WebhookChannel(
        env_config.message_webhook_url,
        timeout=app_config.notifications.request_timeout,
    )


def build_runtime(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    channel: Optional[MessageChannel] = None,
    analyzer: Optional[TextAnalyzer] = None,
) -> Runtime:
    """
    Wire every component from configuration.

    The database must already be initialized. ``channel`` and ``analyzer``
    replace the configured ones (tests and embedding applications).
    """
    matching = app_config.matching
    notifications = app_config.notifications

    directory = SqlProfileDirectory()
    extractor = SignalExtractor(
        analyzer or build_analyzer(app_config, env_config),
        embedder=HashingEmbedder(matching.embedding_dimensions),
        cache_size=matching.signal_cache_size,
    )
    store = SqlMatchStore()
    resolver = MatchResolver(
        directory=directory,
        extractor=extractor,
        scorer=build_scorer(matching.scorers, matching.weights),
        store=store,
        ttl=timedelta(seconds=matching.cache_ttl_seconds),
    )

    marker_store = SqlNotificationMarkerStore()
    gate = NotificationGate(
        marker_store=marker_store,
        channel=channel or build_channel(app_config, env_config),
        rate_limiter=RateLimiter(notifications.sends_per_second, burst=notifications.burst),
        renderer=TemplateRenderer(),
        job_link_base_url=notifications.job_link_base_url,
    )
    gate.warm_cache()

    orchestrator = BulkOrchestrator(
        directory=directory,
        resolver=resolver,
        gate=gate,
        progress_every=app_config.sweep.progress_every,
    )
    dispatcher = SweepDispatcher(
        orchestrator=orchestrator,
        marker_store=marker_store,
        max_concurrent_sweeps=app_config.sweep.max_concurrent_sweeps,
        maintenance_interval_seconds=app_config.sweep.maintenance_interval_seconds,
        claim_timeout_seconds=notifications.claim_timeout_seconds,
    )
    service = MatchingService(
        resolver=resolver, store=store, extractor=extractor, dispatcher=dispatcher
    )

    logger.info(
        "Services initialized",
        extra={
            "event": "services.initialized",
            "scorers": ",".join(matching.scorers),
            "channel": gate.channel.name,
        },
    )
    return Runtime(
        resolver=resolver,
        gate=gate,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
        service=service,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campusmatch",
        description="Candidate-job matching and notification pipeline",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve the match record of one pair")
    resolve.add_argument("candidate_id")
    resolve.add_argument("job_id")
    resolve.add_argument("--force-refresh", action="store_true", help="Ignore the cached record")

    sweep_job = commands.add_parser("sweep-job", help="Match one job against all candidates")
    sweep_job.add_argument("job_id")

    sweep_candidate = commands.add_parser(
        "sweep-candidate", help="Match one candidate against all open jobs"
    )
    sweep_candidate.add_argument("candidate_id")

    invalidate = commands.add_parser("invalidate", help="Mark stored matches as stale")
    invalidate.add_argument("--candidate", dest="candidate_id", default=None)
    invalidate.add_argument("--job", dest="job_id", default=None)

    stats = commands.add_parser("stats", help="Show match statistics of a candidate")
    stats.add_argument("candidate_id")

    commands.add_parser("maintenance", help="Purge abandoned notification claims")

    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _report_sweep(result: SweepResult) -> int:
    _print_json(
        {
            "sweep_id": result.sweep_id,
            "kind": result.kind,
            "subject_id": result.subject_id,
            "skipped": result.skipped,
            "cancelled": result.cancelled,
            "duration_seconds": round(result.duration_seconds, 3),
            **result.as_log_fields(),
        }
    )
    return 1 if result.had_errors else 0


def run_command(args: argparse.Namespace, runtime: Runtime) -> int:
    """Execute one sub-command and return its exit code."""
    if args.command == "resolve":
        record = runtime.service.resolve_match(
            args.candidate_id, args.job_id, force_refresh=args.force_refresh
        )
        _print_json(record.model_dump(mode="json"))
        return 0

    if args.command == "sweep-job":
        return _report_sweep(runtime.orchestrator.run_job_sweep(args.job_id))

    if args.command == "sweep-candidate":
        return _report_sweep(runtime.orchestrator.run_candidate_sweep(args.candidate_id))

    if args.command == "invalidate":
        if args.candidate_id is None and args.job_id is None:
            print("invalidate needs --candidate and/or --job", file=sys.stderr)
            return 2
        count = runtime.service.invalidate(candidate_id=args.candidate_id, job_id=args.job_id)
        _print_json({"invalidated": count})
        return 0

    if args.command == "stats":
        _print_json(asdict(runtime.service.match_statistics(args.candidate_id)))
        return 0

    if args.command == "maintenance":
        _print_json({"purged_claims": runtime.dispatcher.run_maintenance()})
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for configuration errors, failed pairs
        or unexpected errors)
    """
    load_dotenv()
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )
        logger.info(
            "campusmatch starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "log_level": env_config.log_level,
            },
        )

        init_database(env_config.database_url)
        try:
            runtime = build_runtime(app_config, env_config)
            exit_code = run_command(args, runtime)
        finally:
            close_database()

        logger.info(
            "campusmatch finished",
            extra={
                "event": "service.stopping",
                "command": args.command,
                "exit_code": exit_code,
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except MatchingError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(
            f"Command failed: {e}",
            extra={"event": "command.failed", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
