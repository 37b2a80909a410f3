"""GCP provider metadata."""

from dataclasses import dataclass
from typing import Optional

from metadata.base import EnvMappedMetadata, env_field, register_metadata


@register_metadata('gcp')
@dataclass
class GCPMetadata(EnvMappedMetadata):
    """GCP project, credentials and network settings."""
    gce_project: Optional[str] = env_field('GCE_PROJECT')
    gce_host_project: Optional[str] = env_field('GCE_HOST_PROJECT')
    # Path to the service account JSON on the executor host
    application_credentials: Optional[str] = env_field('GOOGLE_APPLICATION_CREDENTIALS')
    custom_network: Optional[str] = env_field('CUSTOM_GCE_NETWORK')
