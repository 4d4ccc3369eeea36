"""Arc-enabled SQL Server instances and their extension status."""

from __future__ import annotations

import logging
from typing import List, Mapping

from ..adapters.graph_client import GraphQueryClient
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.results import ArcSQLResult
from ..normalization.graph_rows import to_text
from .base import log_resource_type_scan

logger = logging.getLogger(__name__)

ARC_SQL_QUERY = """
resources
| where type =~ "Microsoft.AzureArcData/sqlServerInstances"
| extend SQLInstance = id, AzureArcServer = tolower(tostring(properties.containerResourceId))
| extend version = tostring(properties.version)
| extend edition = tostring(properties.edition)
| extend Build = tostring(properties.currentVersion)
| extend DefenderStatus = tostring(properties.azureDefenderStatus)
| extend patchLevel = tostring(properties.patchLevel)
| extend vcores = toint(properties.vCore)
| join kind=inner (resources
| where type == 'microsoft.hybridcompute/machines/extensions'
| where properties.type == "WindowsAgent.SqlServer"
| order by ['id'] asc
| extend License = case(properties.settings.LicenseType == "Paid","SA",properties.settings.LicenseType == "PAYG","PAYG","unset")
| extend Serverid = tolower(tostring(split(id,'/extensions/WindowsAgent.SqlServer')[0]))
| parse properties with * 'uploadStatus : ' DPSStatus ';' *
| parse properties with * 'telemetryUploadStatus : ' TELStatusRaw ';' *
| extend DPSStatus = iff(DPSStatus == "", "No Data",DPSStatus)
| extend TELStatuslogs = (parse_json(replace('.\\"','\\"',TELStatusRaw))).logs
| extend TELStatus = iff(TELStatuslogs.status == "OK","__",iff(TELStatuslogs.message == "","No Data",TELStatuslogs.message))
) on $left.AzureArcServer == $right.Serverid
| join kind=inner (resources
| where type == "microsoft.hybridcompute/machines"
| extend status = tostring(properties.status)
| project id = tolower(id),status) on $left.AzureArcServer == $right.id
| project subscriptionId,status,AzureArcServer,SQLInstance,resourceGroup,version,Build,patchLevel,edition,vcores,License,DPSStatus,TELStatus,DefenderStatus
"""


class ArcSQLScanner:
    def __init__(self, graph_client: GraphQueryClient) -> None:
        self._graph = graph_client

    def scan(
        self,
        ctx: ExecutionContext,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> List[ArcSQLResult]:
        log_resource_type_scan("Azure Arc-enabled SQL Server")
        logger.debug(ARC_SQL_QUERY)

        results: List[ArcSQLResult] = []
        for row in self._graph.query(ctx, ARC_SQL_QUERY, sorted(subscriptions)):
            subscription_id = to_text(row.get("subscriptionId"))
            if filters.is_subscription_excluded(subscription_id):
                continue
            sql_instance = to_text(row.get("SQLInstance"))
            if filters.is_service_excluded(sql_instance):
                continue

            results.append(
                ArcSQLResult(
                    subscription_id=subscription_id,
                    subscription_name=subscriptions.get(subscription_id, ""),
                    status=to_text(row.get("status")),
                    azure_arc_server=to_text(row.get("AzureArcServer")),
                    sql_instance=sql_instance,
                    resource_group=to_text(row.get("resourceGroup")),
                    version=to_text(row.get("version")),
                    build=to_text(row.get("Build")),
                    patch_level=to_text(row.get("patchLevel")),
                    edition=to_text(row.get("edition")),
                    vcores=to_text(row.get("vcores")),
                    license=to_text(row.get("License")),
                    dps_status=to_text(row.get("DPSStatus")),
                    tel_status=to_text(row.get("TELStatus")),
                    defender_status=to_text(row.get("DefenderStatus")),
                )
            )
        return results


__all__ = ["ARC_SQL_QUERY", "ArcSQLScanner"]
