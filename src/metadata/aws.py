"""AWS provider metadata."""

from dataclasses import dataclass
from typing import Optional

from metadata.base import EnvMappedMetadata, env_field, register_metadata


@register_metadata('aws')
@dataclass
class AWSMetadata(EnvMappedMetadata):
    """AWS credentials and DNS settings."""
    access_key_id: Optional[str] = env_field('AWS_ACCESS_KEY_ID')
    secret_access_key: Optional[str] = env_field('AWS_SECRET_ACCESS_KEY')
    hosted_zone_id: Optional[str] = env_field('AWS_HOSTED_ZONE_ID')
    default_region: Optional[str] = env_field('AWS_DEFAULT_REGION')
