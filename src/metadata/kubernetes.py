"""Kubernetes provider metadata."""

from dataclasses import dataclass
from typing import Optional

from metadata.base import EnvMappedMetadata, env_field, register_metadata


@register_metadata('kubernetes')
@dataclass
class KubernetesMetadata(EnvMappedMetadata):
    """Kubernetes provisioning settings.

    KUBECONFIG_IMAGE_PULL_SECRET_NAME and KUBECONFIG_PULL_SECRET_NAME are
    separate settings and are kept as separate keys.
    """
    kube_config_provider: Optional[str] = env_field('KUBECONFIG_PROVIDER')
    kube_config_service_account: Optional[str] = env_field('KUBECONFIG_SERVICE_ACCOUNT')
    kube_config_image_registry: Optional[str] = env_field('KUBECONFIG_IMAGE_REGISTRY')
    kube_config_image_pull_secret_name: Optional[str] = env_field('KUBECONFIG_IMAGE_PULL_SECRET_NAME')
    kube_config_pull_secret: Optional[str] = env_field('KUBECONFIG_PULL_SECRET')
    kube_config: Optional[str] = env_field('KUBECONFIG')
    kubernetes_storage_class: Optional[str] = env_field('KUBECONFIG_STORAGE_CLASSES')
    kube_config_pull_secret_content: Optional[str] = env_field('KUBECONFIG_PULL_SECRET_CONTENT')
    kube_config_pull_secret_name: Optional[str] = env_field('KUBECONFIG_PULL_SECRET_NAME')
