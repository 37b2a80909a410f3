"""Provider cloud metadata variants.

A variant is chosen once, from the provider code, when a provider config
record is parsed.
"""

from metadata.base import (
    CloudMetadata,
    EnvMappedMetadata,
    create_metadata,
    get_metadata_class,
    list_provider_codes,
    register_metadata,
)
from metadata.kubernetes import KubernetesMetadata
from metadata.aws import AWSMetadata
from metadata.gcp import GCPMetadata
from metadata.azure import AzureMetadata

__all__ = [
    'CloudMetadata',
    'EnvMappedMetadata',
    'create_metadata',
    'get_metadata_class',
    'list_provider_codes',
    'register_metadata',
    'KubernetesMetadata',
    'AWSMetadata',
    'GCPMetadata',
    'AzureMetadata',
]
