"""First stage of every scan: validation, output name, credential and report data."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ...adapters.credential import new_azure_credential
from ...models.report_data import ReportData
from ...models.scan_params import ScanParams
from ...scanners.registry import get_scanner_count, get_scanner_keys, list_scanner_info
from ..executor import BaseStage, ScanContext, ScanValidationError

logger = logging.getLogger(__name__)

OUTPUT_NAME_PREFIX = "azqr_action_plan"
_REGISTRY_SAMPLE_SIZE = 5


def generate_output_file_name(output_name: str, now: datetime | None = None) -> str:
    """Return ``output_name`` or ``azqr_action_plan_YYYY_MM_DD_THHMMSS``."""

    if output_name:
        return output_name
    stamp = (now or datetime.now()).strftime("%Y_%m_%d_T%H%M%S")
    return f"{OUTPUT_NAME_PREFIX}_{stamp}"


def validate_scan_scope(params: ScanParams) -> None:
    """Reject management-group, subscription and resource-group combinations that conflict."""

    if params.management_groups and (params.subscriptions or params.resource_groups):
        raise ScanValidationError(
            "Management Group name cannot be used with a Subscription Id or Resource Group name"
        )
    if not params.subscriptions and params.resource_groups:
        raise ScanValidationError("Resource Group name can only be used with a Subscription Id")
    if len(params.subscriptions) > 1 and params.resource_groups:
        raise ScanValidationError("Resource Group name can only be used with 1 Subscription Id")


class InitializationStage(BaseStage):
    def __init__(self, *, clock: Callable[[], datetime] = datetime.now) -> None:
        super().__init__("Initialization", True)
        self._clock = clock

    def execute(self, ctx: ScanContext) -> None:
        params = ctx.params
        self._log_scanner_registry_info()

        params.output_name = generate_output_file_name(params.output_name, self._clock())
        self._prepare_filters(params)

        if ctx.credential is None:
            factory = ctx.credential_factory or new_azure_credential
            ctx.credential = factory()

        ctx.report_data = ReportData(
            output_name=params.output_name,
            mask=params.mask,
            stages=params.stages,
        )
        logger.debug("Initialization stage completed")

    # ------------------------------------------------------------------
    def _prepare_filters(self, params: ScanParams) -> None:
        validate_scan_scope(params)

        filters = params.filters
        for subscription_id in params.subscriptions:
            filters.add_subscription(subscription_id)
        for resource_group in params.resource_groups:
            filters.add_resource_group(
                f"/subscriptions/{params.subscriptions[0]}/resourceGroups/{resource_group}"
            )
        logger.debug("Filters prepared with %d scanners", len(filters.scanners))

    def _log_scanner_registry_info(self) -> None:
        info = list_scanner_info()
        logger.debug(
            "Scanner registry initialized: %d scanners, %d keys",
            get_scanner_count(),
            len(get_scanner_keys()),
        )
        for entry in info[:_REGISTRY_SAMPLE_SIZE]:
            logger.debug(
                "Registered scanner %s for %s (%d)",
                entry.key,
                ", ".join(entry.resource_types),
                entry.scanner_count,
            )
        if len(info) > _REGISTRY_SAMPLE_SIZE:
            logger.debug("... and %d more scanners", len(info) - _REGISTRY_SAMPLE_SIZE)


__all__ = [
    "InitializationStage",
    "OUTPUT_NAME_PREFIX",
    "generate_output_file_name",
    "validate_scan_scope",
]
