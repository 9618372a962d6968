"""Top-level runner cleanup command line interface.

All behaviour is driven by environment variables; see ``resolve_config``.
"""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from runner_cleaner.jobs.tasks import ConfigError, resolve_config, runner_cleanup
from runner_cleaner.utils.logging import get_structured_logger, log_cleanup_event


def _build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="runner-cleaner",
        description=(
            "Delete offline GitLab runner registrations. Configure with GITLAB_TOKEN, "
            "PAGE_SIZE, DELETE_PERSONAL, DELETE_GROUP_RUNNERS, GROUP_IDS and DRY_RUN."
        ),
    )


def main(argv: Sequence[str] | None = None) -> int:
    _build_parser().parse_args(argv)

    try:
        config = resolve_config()
    except ConfigError as exc:
        log_cleanup_event(
            get_structured_logger(),
            event="config_invalid",
            message=str(exc),
            level=logging.ERROR,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return 1

    runner_cleanup(config, logger=get_structured_logger(level=config.log_level))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
