"""Adapters for the management-plane services the scan talks to."""

from .cloud import CloudConfiguration, get_cloud_configuration, get_resource_manager_endpoint
from .credential import BearerTokenPolicy, CredentialError, new_azure_credential
from .graph_client import GraphQueryClient, GraphQueryError, mask_subscription_id
from .http_client import (
    HTTPError,
    HttpClient,
    HttpClientOptions,
    TransportError,
    default_options,
    long_running_options,
)
from .throttling import ARM_LIMITER, GRAPH_LIMITER, TokenBucketLimiter, limiter_for_url

__all__ = [
    "ARM_LIMITER",
    "BearerTokenPolicy",
    "CloudConfiguration",
    "CredentialError",
    "GRAPH_LIMITER",
    "GraphQueryClient",
    "GraphQueryError",
    "HTTPError",
    "HttpClient",
    "HttpClientOptions",
    "TokenBucketLimiter",
    "TransportError",
    "default_options",
    "get_cloud_configuration",
    "get_resource_manager_endpoint",
    "limiter_for_url",
    "long_running_options",
    "mask_subscription_id",
    "new_azure_credential",
]
