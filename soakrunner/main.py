"""
Soak Runner - Command Line Entry Point

Loads the run configuration, brings the docker compose stand up, polls
Prometheus until a ceiling is breached or the test duration elapses, tears
the stand down and logs the report.

Exit codes:
    0  completed without breach
    1  a metric breached its ceiling
    2  configuration error (environment untouched)
    3  environment start/stop failed (no report)
    130  interrupted
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from uvicorn.logging import DefaultFormatter

from soakrunner.config import load_run_config, settings
from soakrunner.connectors import DockerComposeEnv, PrometheusMetricSource
from soakrunner.connectors.base import EnvManager, MetricSource
from soakrunner.core import (
    ConfigError,
    EnvLifecycleError,
    Eventer,
    Gatherer,
    Reporter,
    Scheduler,
    SoakRunnerError,
)
from soakrunner.models import RunConfig, StopReason

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BREACH = 1
EXIT_CONFIG_ERROR = 2
EXIT_ENV_ERROR = 3
EXIT_INTERRUPTED = 130


@dataclass
class RunOutcome:
    exit_code: int
    stop_reason: StopReason | None = None
    reporter: Reporter | None = None


def configure_logging(level: str | None = None) -> None:
    # Same colored "LEVEL:" prefix uvicorn uses, for every logger.
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        DefaultFormatter(fmt=settings.LOG_FORMAT, use_colors=sys.stderr.isatty())
    )
    logging.basicConfig(
        level=getattr(logging, str(level or settings.LOG_LEVEL).upper(), logging.INFO),
        handlers=[console_handler],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_scheduler(
    config: RunConfig,
    reporter: Reporter,
    *,
    source: MetricSource,
    env_manager: EnvManager,
    **scheduler_kwargs,
) -> Scheduler:
    """Wire gatherer, eventer and scheduler; the eventer stops its scheduler."""
    eventer = Eventer(gatherer=Gatherer(config.metrics, source), reporter=reporter)
    scheduler = Scheduler(
        env_manager=env_manager,
        eventer=eventer,
        start_delay=config.start_delay,
        test_duration=config.test_duration,
        interval=config.interval,
        **scheduler_kwargs,
    )
    eventer.stopper = scheduler.request_stop
    return scheduler


def _log_info(config: RunConfig) -> None:
    logger.info("=[ info ]==============================")
    logger.info("         host: %s", config.host)
    logger.info("      workDir: %s", config.work_dir)
    logger.info("   startDelay: %s", config.start_delay)
    logger.info(" testDuration: %s", config.test_duration)
    logger.info("      timeout: %s", config.interval)
    for metric in config.metrics:
        logger.info("       metric: %s <= %s", metric.name, metric.ceiling)
    logger.info("=[ init ]==============================")


async def execute_run(
    config: RunConfig,
    *,
    source: MetricSource,
    env_manager: EnvManager,
    report_json: str | None = None,
    **scheduler_kwargs,
) -> RunOutcome:
    """
    Run one soak test against already-built collaborators.

    Raises:
        EnvLifecycleError: If the environment cannot be started or stopped.
    """
    _log_info(config)
    reporter = Reporter()
    scheduler = build_scheduler(
        config, reporter, source=source, env_manager=env_manager, **scheduler_kwargs
    )

    await scheduler.init()
    try:
        reason = await scheduler.run()
    finally:
        logger.info("=[ stop ]==============================")
        await scheduler.down()

    reporter.report(reason)
    if report_json:
        reporter.write_json(report_json, reason)

    breached = reason == StopReason.BREACH or any(
        not batch.within_ceiling for batch in reporter.batches
    )
    return RunOutcome(
        exit_code=EXIT_BREACH if breached else EXIT_OK,
        stop_reason=reason,
        reporter=reporter,
    )


def _log_failure(kind: str, exc: SoakRunnerError) -> None:
    logger.error("%s: %s", kind, exc)
    for key, value in exc.context.items():
        logger.error("    %s: %s", key, value)


async def run_from_config_path(config_path: str, *, report_json: str | None = None) -> int:
    try:
        config = load_run_config(config_path)
    except ConfigError as exc:
        _log_failure("Configuration error", exc)
        return EXIT_CONFIG_ERROR

    env_manager = DockerComposeEnv(
        config.work_dir,
        compose_file=config.compose_file,
        project_name=config.project_name,
        command=settings.DOCKER_COMPOSE_COMMAND,
    )
    async with PrometheusMetricSource(
        config.host,
        query_timeout=settings.PROMETHEUS_QUERY_TIMEOUT_SECONDS,
        call_timeout=settings.PROMETHEUS_CALL_TIMEOUT_SECONDS,
    ) as source:
        try:
            outcome = await execute_run(
                config,
                source=source,
                env_manager=env_manager,
                report_json=report_json,
            )
        except EnvLifecycleError as exc:
            _log_failure("Environment error", exc)
            if exc.stderr:
                logger.error("%s", exc.stderr)
            return EXIT_ENV_ERROR
    return outcome.exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a soak test against a docker compose stand with Prometheus ceilings."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Run configuration YAML (default: CONFIG_PATH or ./config.yaml).",
    )
    parser.add_argument(
        "--report-json",
        default=None,
        help="Also write the report as JSON to this path.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    config_path = args.config or settings.CONFIG_PATH
    report_json = args.report_json or settings.REPORT_JSON_PATH or None
    try:
        return asyncio.run(run_from_config_path(config_path, report_json=report_json))
    except KeyboardInterrupt:
        print("[soakrunner] interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
