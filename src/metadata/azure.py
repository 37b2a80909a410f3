"""Azure provider metadata."""

from dataclasses import dataclass
from typing import Optional

from metadata.base import EnvMappedMetadata, env_field, register_metadata


@register_metadata('azu')
@dataclass
class AzureMetadata(EnvMappedMetadata):
    azure_client_id: Optional[str] = env_field('AZURE_CLIENT_ID')
    azure_client_secret: Optional[str] = env_field('AZURE_CLIENT_SECRET')
    azure_tenant_id: Optional[str] = env_field('AZURE_TENANT_ID')
    azure_subscription_id: Optional[str] = env_field('AZURE_SUBSCRIPTION_ID')
    azure_resource_group: Optional[str] = env_field('AZURE_RG')
