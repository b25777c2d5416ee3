"""Main module entrypoint for local runtime execution.

This module validates startup configuration, configures logging, and either
launches the FastAPI service or prints an exposure report.
"""

import argparse
import logging

import uvicorn

from hedge_ledger.bootstrap import bootstrap_create_application, bootstrap_create_services
from hedge_ledger.config import AppSettings, config_load_settings
from hedge_ledger.ledger import HedgeExecutionFilter

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
    """

    argument_parser = argparse.ArgumentParser(description="Hedge ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "exposure-report"),
        help="Runtime command: `api` starts server, `exposure-report` prints net and open hedge exposure",
        type=str,
    )
    argument_parser.add_argument(
        "--metal",
        dest="metal",
        type=str,
        help="Optional metal filter for `exposure-report`",
    )
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    main_configure_logging(settings)

    if parsed_arguments.command == "exposure-report":
        main_print_exposure_report(settings, metal=parsed_arguments.metal)
        return

    application = bootstrap_create_application(settings)
    logger.info(
        "starting hedge ledger api environment=%s host=%s port=%s",
        settings.environment_name,
        settings.application_host,
        settings.application_port,
    )
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
        log_level=settings.log_level.lower(),
    )


def main_configure_logging(settings: AppSettings) -> None:
    """Configure root logging from settings."""

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main_print_exposure_report(settings: AppSettings, metal: str | None = None) -> None:
    """Print net and open exposure for every execution, optionally by metal.

    Args:
        settings: Validated runtime settings.
        metal: Optional metal filter.

    Returns:
        None: Prints the report to stdout as side effect.

    Raises:
        HedgeStorageError: Raised when the ledger store cannot be read.
    """

    services = bootstrap_create_services(settings)
    summary = services.projection_service.projection_exposure_summary(
        HedgeExecutionFilter(metal=metal.strip() if metal and metal.strip() else None)
    )
    print(f"contracts: {summary.contract_count}")
    print(f"net_exposure_mt: {summary.net_exposure_mt}")
    print(f"open_exposure_mt: {summary.open_exposure_mt}")


if __name__ == "__main__":
    main()
