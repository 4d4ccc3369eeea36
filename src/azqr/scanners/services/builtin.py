"""Service keys whose resource types are covered only by graph recommendations."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from ..base import BaseScanner

# service key -> (display name, resource types)
BASE_SCANNERS: Dict[str, Tuple[str, Sequence[str]]] = {
    "aa": ("Automation Account", ["Microsoft.Automation/automationAccounts"]),
    "adf": ("Data Factory", ["Microsoft.DataFactory/factories"]),
    "afd": ("Front Door", ["Microsoft.Cdn/profiles"]),
    "afw": ("Azure Firewall", ["Microsoft.Network/azureFirewalls", "Microsoft.Network/ipGroups"]),
    "agw": ("Application Gateway", ["Microsoft.Network/applicationGateways"]),
    "aif": ("AI Services", ["Microsoft.CognitiveServices/accounts"]),
    "amg": ("Azure Managed Grafana", ["Microsoft.Dashboard/grafana"]),
    "apim": ("API Management", ["Microsoft.ApiManagement/service"]),
    "appcs": ("App Configuration", ["Microsoft.AppConfiguration/configurationStores"]),
    "appi": (
        "Application Insights",
        ["Microsoft.Insights/components", "Microsoft.Insights/activityLogAlerts"],
    ),
    "arc": ("Azure Arc", ["Microsoft.AzureArcData/sqlServerInstances"]),
    "as": ("Analysis Services", ["Microsoft.AnalysisServices/servers"]),
    "asa": ("Stream Analytics Job", ["Microsoft.StreamAnalytics/streamingJobs"]),
    "asp": (
        "App Service Plan",
        [
            "Microsoft.Web/serverFarms",
            "Microsoft.Web/sites",
            "Microsoft.Web/connections",
            "Microsoft.Web/certificates",
        ],
    ),
    "avail": ("Availability Set", ["Microsoft.Compute/availabilitySets"]),
    "avd": ("Azure Virtual Desktop", ["Specialized.Workload/AVD"]),
    "avs": ("Azure VMware Solution", ["Microsoft.AVS/privateClouds", "Specialized.Workload/AVS"]),
    "ba": ("Batch Account", ["Microsoft.Batch/batchAccounts"]),
    "bastion": ("Bastion Host", ["Microsoft.Network/bastionHosts"]),
    "ca": ("Container App", ["Microsoft.App/containerApps"]),
    "cae": ("Container Apps Environment", ["Microsoft.App/managedenvironments"]),
    "ci": ("Container Instance", ["Microsoft.ContainerInstance/containerGroups"]),
    "con": ("Connection", ["Microsoft.Network/connections"]),
    "cosmos": ("Cosmos DB", ["Microsoft.DocumentDB/databaseAccounts"]),
    "cr": ("Container Registry", ["Microsoft.ContainerRegistry/registries"]),
    "dbw": ("Databricks Workspace", ["Microsoft.Databricks/workspaces"]),
    "ddos": ("DDoS Protection Plan", ["Microsoft.Network/ddosProtectionPlans"]),
    "dec": ("Data Explorer Cluster", ["Microsoft.Kusto/clusters"]),
    "disk": ("Disk", ["Microsoft.Compute/disks"]),
    "dnsres": ("DNS Resolver", ["Microsoft.Network/dnsResolvers"]),
    "dnsz": ("DNS Zone", ["Microsoft.Network/dnsZones"]),
    "domain": ("Domain Services", ["Microsoft.AAD/domainServices"]),
    "erc": (
        "ExpressRoute Circuit",
        [
            "Microsoft.Network/expressRouteCircuits",
            "Microsoft.Network/ExpressRoutePorts",
            "Microsoft.Network/expressRouteGateways",
        ],
    ),
    "evgd": ("Event Grid Domain", ["Microsoft.EventGrid/domains"]),
    "evgt": ("Event Grid Topic", ["Microsoft.EventGrid/topics"]),
    "evh": ("Event Hub", ["Microsoft.EventHub/namespaces"]),
    "fabric": ("Fabric", ["Microsoft.Fabric/capacities"]),
    "fdfp": ("Front Door Firewall Policy", ["Microsoft.Network/frontdoorWebApplicationFirewallPolicies"]),
    "gal": ("Compute Gallery", ["Microsoft.Compute/galleries"]),
    "hpc": ("HPC", ["Specialized.Workload/HPC"]),
    "hub": (
        "Machine Learning Workspace",
        [
            "Microsoft.MachineLearningServices/workspaces",
            "Microsoft.MachineLearningServices/registries",
        ],
    ),
    "iot": ("IoT Hub", ["Microsoft.Devices/IotHubs"]),
    "it": ("Image Template", ["Microsoft.VirtualMachineImages/imageTemplates"]),
    "lb": ("Load Balancer", ["Microsoft.Network/loadBalancers"]),
    "log": ("Log Analytics Workspace", ["Microsoft.OperationalInsights/workspaces"]),
    "logic": ("Logic App", ["Microsoft.Logic/workflows"]),
    "mysql": ("MySQL Database", ["Microsoft.DBforMySQL/servers", "Microsoft.DBforMySQL/flexibleServers"]),
    "netapp": ("NetApp Account", ["Microsoft.NetApp/netAppAccounts"]),
    "ng": ("NAT Gateway", ["Microsoft.Network/natGateways"]),
    "nic": ("Network Interface", ["Microsoft.Network/networkInterfaces"]),
    "nsg": ("Network Security Group", ["Microsoft.Network/networkSecurityGroups"]),
    "ntc": ("Azure Traffic Collector", ["Microsoft.NetworkFunction/azureTrafficCollectors"]),
    "nw": ("Network Watcher", ["Microsoft.Network/networkWatchers"]),
    "odb": (
        "Oracle Database",
        ["Oracle.Database/cloudExadataInfrastructures", "Oracle.Database/cloudVmClusters"],
    ),
    "p2svpng": ("P2S VPN Gateway", ["Microsoft.Network/p2sVpnGateways"]),
    "pdnsz": ("Private DNS Zone", ["Microsoft.Network/privateDnsZones"]),
    "pep": ("Private Endpoint", ["Microsoft.Network/privateEndpoints"]),
    "pip": ("Public IP Address", ["Microsoft.Network/publicIPAddresses"]),
    "psql": (
        "PostgreSQL Database",
        ["Microsoft.DBforPostgreSQL/servers", "Microsoft.DBforPostgreSQL/flexibleServers"],
    ),
    "redis": ("Redis Cache", ["Microsoft.Cache/Redis"]),
    "resource": ("Resource", ["Microsoft.Resources"]),
    "rg": ("Resource Group", ["Microsoft.Resources/resourceGroups"]),
    "rsv": ("Recovery Services Vault", ["Microsoft.RecoveryServices/vaults"]),
    "rt": ("Route Table", ["Microsoft.Network/routeTables"]),
    "sap": ("SAP", ["Specialized.Workload/SAP"]),
    "sb": ("Service Bus", ["Microsoft.ServiceBus/namespaces"]),
    "sigr": ("SignalR", ["Microsoft.SignalRService/SignalR"]),
    "sql": (
        "SQL Server",
        ["Microsoft.Sql/servers", "Microsoft.Sql/servers/databases", "Microsoft.Sql/servers/elasticPools"],
    ),
    "sqlmi": ("SQL Managed Instance", ["Microsoft.Sql/managedInstances"]),
    "srch": ("Search Service", ["Microsoft.Search/searchServices"]),
    "sub": ("Subscription", ["Microsoft.Subscription/subscriptions"]),
    "synw": (
        "Synapse Workspace",
        [
            "Microsoft.Synapse/workspaces",
            "Microsoft.Synapse/workspaces/bigDataPools",
            "Microsoft.Synapse/workspaces/sqlPools",
        ],
    ),
    "traf": ("Traffic Manager", ["Microsoft.Network/trafficManagerProfiles"]),
    "vdpool": (
        "Virtual Desktop Host Pool",
        [
            "Microsoft.DesktopVirtualization/hostPools",
            "Microsoft.DesktopVirtualization/scalingPlans",
            "Microsoft.DesktopVirtualization/workspaces",
        ],
    ),
    "vgw": ("Virtual Network Gateway", ["Microsoft.Network/virtualNetworkGateways"]),
    "vhub": ("Virtual Hub", ["Microsoft.Network/virtualHubs"]),
    "vmss": ("Virtual Machine Scale Set", ["Microsoft.Compute/virtualMachineScaleSets"]),
    "vnet": ("Virtual Network", ["Microsoft.Network/virtualNetworks", "Microsoft.Network/virtualNetworks/subnets"]),
    "vpng": ("VPN Gateway", ["Microsoft.Network/vpnGateways"]),
    "vpns": ("VPN Site", ["Microsoft.Network/vpnSites"]),
    "vrouter": ("Virtual Router", ["Microsoft.Network/virtualRouters"]),
    "vwan": ("Virtual WAN", ["Microsoft.Network/virtualWans"]),
    "wps": ("Web PubSub", ["Microsoft.SignalRService/webPubSub"]),
}


def new_base_scanners() -> Dict[str, List[BaseScanner]]:
    return {
        key: [BaseScanner(name, *resource_types)]
        for key, (name, resource_types) in BASE_SCANNERS.items()
    }


__all__ = ["BASE_SCANNERS", "new_base_scanners"]
