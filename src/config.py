"""Provider and site configuration management.

Configuration is loaded from site-config YAML files:
- site.yaml: Site-wide defaults (node agent, timeouts, state directory)
- providers/*.yaml: Provider configuration with region/zone overrides

A provider file looks like:

    code: kubernetes
    config:
      KUBECONFIG_PROVIDER: gke
    regions:
      us-west1:
        config: {...}
        zones:
          us-west1-a:
            config: {...}
    nodes:
      yb-node-1: {region: us-west1, zone: us-west1-a}

The metadata variant for every level is picked from `code` when the file is
parsed. Environment resolution order is provider → region → zone, with the
more specific level winning per key.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from metadata import EnvMappedMetadata, create_metadata

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration error."""


@dataclass
class NodePlacement:
    """Region/zone a node lives in."""
    region: Optional[str] = None
    zone: Optional[str] = None


@dataclass
class ZoneConfig:
    name: str
    metadata: EnvMappedMetadata


@dataclass
class RegionConfig:
    name: str
    metadata: EnvMappedMetadata
    zones: dict[str, ZoneConfig] = field(default_factory=dict)

    def get_zone(self, zone: str) -> ZoneConfig:
        """Get zone by name.

        Raises:
            ConfigError: If the zone is not configured
        """
        if zone not in self.zones:
            raise ConfigError(
                f"Zone '{zone}' not found in region '{self.name}'. "
                f"Available: {sorted(self.zones)}")
        return self.zones[zone]


@dataclass
class ProviderConfig:
    """Configuration record for one infrastructure provider.

    Attributes:
        name: Provider identifier (file stem under providers/)
        code: Provider type, selects the metadata variant
        metadata: Provider-level metadata
        regions: Region configs keyed by name
        nodes: Node placements keyed by node name
        config_file: Source file, if loaded from disk
    """
    name: str
    code: str
    metadata: EnvMappedMetadata
    regions: dict[str, RegionConfig] = field(default_factory=dict)
    nodes: dict[str, NodePlacement] = field(default_factory=dict)
    config_file: Optional[Path] = None

    @classmethod
    def from_dict(cls, name: str, data: dict, config_file: Optional[Path] = None) -> 'ProviderConfig':
        """Parse a provider record.

        Raises:
            ConfigError: If `code` is missing or unknown, or sections are malformed
        """
        code = data.get('code')
        if not code:
            raise ConfigError(f"Provider '{name}' has no 'code'")

        metadata = create_metadata(code, _section(data, 'config', name))

        regions: dict[str, RegionConfig] = {}
        for region_name, region_data in _section(data, 'regions', name).items():
            where = f"{name}/{region_name}"
            region_data = _mapping(region_data, where)
            zones = {}
            for zone_name, zone_data in _section(region_data, 'zones', where).items():
                zone_where = f"{where}/{zone_name}"
                zones[zone_name] = ZoneConfig(
                    name=zone_name,
                    metadata=create_metadata(code, _section(_mapping(zone_data, zone_where), 'config', zone_where)),
                )
            regions[region_name] = RegionConfig(
                name=region_name,
                metadata=create_metadata(code, _section(region_data, 'config', where)),
                zones=zones,
            )

        nodes = {}
        for node_name, placement in _section(data, 'nodes', name).items():
            placement = _mapping(placement, f"{name} node '{node_name}'")
            nodes[node_name] = NodePlacement(region=placement.get('region'), zone=placement.get('zone'))

        return cls(name=name, code=code, metadata=metadata, regions=regions,
                   nodes=nodes, config_file=config_file)

    def get_region(self, region: str) -> RegionConfig:
        """Get region by name.

        Raises:
            ConfigError: If the region is not configured
        """
        if region not in self.regions:
            raise ConfigError(
                f"Region '{region}' not found in provider '{self.name}'. "
                f"Available: {sorted(self.regions)}")
        return self.regions[region]

    def _levels(self, region: Optional[str], zone: Optional[str]) -> list[EnvMappedMetadata]:
        if zone and not region:
            raise ConfigError("A zone requires its region")
        levels = [self.metadata]
        if region:
            region_config = self.get_region(region)
            levels.append(region_config.metadata)
            if zone:
                levels.append(region_config.get_zone(zone).metadata)
        return levels

    def env_vars(self, region: Optional[str] = None, zone: Optional[str] = None) -> dict[str, str]:
        """Merged environment for a provider, region or zone."""
        env: dict[str, str] = {}
        for metadata in self._levels(region, zone):
            env.update(metadata.get_env_vars())
        return env

    def env_vars_for_node(self, node_name: str) -> dict[str, str]:
        """Merged environment for a node's placement.

        Nodes without a placement get the provider-level environment.
        """
        placement = self.nodes.get(node_name)
        if placement is None:
            return self.env_vars()
        return self.env_vars(placement.region, placement.zone)

    def update(self, config_data: Mapping[str, Any], region: Optional[str] = None,
               zone: Optional[str] = None) -> None:
        """Merge config_data into the provider, region or zone metadata."""
        self._levels(region, zone)[-1].update_cloud_metadata_details(config_data)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {'code': self.code}
        if config := self.metadata.to_dict():
            d['config'] = config
        if self.regions:
            regions: dict[str, Any] = {}
            for region in self.regions.values():
                region_d: dict[str, Any] = {}
                if config := region.metadata.to_dict():
                    region_d['config'] = config
                if region.zones:
                    region_d['zones'] = {
                        zone.name: ({'config': zone.metadata.to_dict()} if zone.metadata.to_dict() else {})
                        for zone in region.zones.values()
                    }
                regions[region.name] = region_d
            d['regions'] = regions
        if self.nodes:
            d['nodes'] = {
                node: {k: v for k, v in (('region', p.region), ('zone', p.zone)) if v is not None}
                for node, p in self.nodes.items()
            }
        return d


@dataclass
class SiteSettings:
    """Site-wide defaults from site.yaml.

    Attributes:
        node_agent: Program the shell executor runs for node commands
        command_timeout: Per-command timeout in seconds
        state_dir: Directory for task-tree state files
    """
    node_agent: str = 'node-agent'
    command_timeout: int = 600
    state_dir: Path = field(default_factory=lambda: Path.home() / '.node-commissioner' / 'states')

    def __post_init__(self):
        if isinstance(self.state_dir, str):
            self.state_dir = Path(self.state_dir).expanduser()


def _mapping(value: Any, where: str) -> dict:
    """Return value as a mapping (None becomes empty), rejecting anything else."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _section(data: dict, key: str, where: str) -> dict:
    """Return a mapping section, rejecting non-mapping values."""
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' in {where} must be a mapping")
    return value

def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}")
    return data


def get_base_dir() -> Path:
    """Get the repository directory."""
    return Path(__file__).parent.parent  # src/ -> repo/


def get_site_config_dir() -> Path:
    """Discover site-config directory.

    Resolution order:
    1. $COMMISSIONER_SITE_CONFIG environment variable
    2. ../site-config/ sibling directory (dev workspace)
    3. /usr/local/etc/commissioner/
    """
    if env_path := os.environ.get('COMMISSIONER_SITE_CONFIG'):
        path = Path(env_path)
        if path.exists():
            return path
        raise ConfigError(f"COMMISSIONER_SITE_CONFIG={env_path} does not exist")

    sibling = get_base_dir().parent / 'site-config'
    if sibling.exists():
        return sibling

    fhs_path = Path('/usr/local/etc/commissioner')
    if fhs_path.exists():
        return fhs_path

    raise ConfigError(
        "site-config not found. "
        "Set COMMISSIONER_SITE_CONFIG or clone site-config as sibling directory."
    )


def load_site_settings() -> SiteSettings:
    """Load site.yaml defaults; missing file or keys fall back to defaults."""
    settings = SiteSettings()
    try:
        site_file = get_site_config_dir() / 'site.yaml'
    except ConfigError:
        logger.debug("No site-config directory, using default settings")
        return settings
    if not site_file.exists():
        return settings

    defaults = _parse_yaml(site_file).get('defaults') or {}
    if node_agent := defaults.get('node_agent'):
        settings.node_agent = str(node_agent)
    if command_timeout := defaults.get('command_timeout'):
        settings.command_timeout = int(command_timeout)
    if state_dir := defaults.get('state_dir'):
        settings.state_dir = Path(state_dir).expanduser()
    return settings


def list_providers() -> list[str]:
    """List provider names from site-config/providers/*.yaml."""
    try:
        site_config = get_site_config_dir()
    except ConfigError:
        return []

    providers_dir = site_config / 'providers'
    if not providers_dir.exists():
        return []
    return sorted(f.stem for f in providers_dir.glob('*.yaml') if f.is_file())


def load_provider_config(name: str) -> ProviderConfig:
    """Load configuration for a named provider.

    Raises:
        ConfigError: If the provider file is missing or invalid
    """
    provider_file = get_site_config_dir() / 'providers' / f'{name}.yaml'
    if not provider_file.exists():
        available = list_providers()
        raise ConfigError(
            f"Provider '{name}' not found: {provider_file}\n"
            f"Available providers: {', '.join(available) if available else 'none configured'}"
        )
    return ProviderConfig.from_dict(name, _parse_yaml(provider_file), config_file=provider_file)


def save_provider_config(provider: ProviderConfig) -> Path:
    """Write a provider record back to its YAML file."""
    path = provider.config_file
    if path is None:
        path = get_site_config_dir() / 'providers' / f'{provider.name}.yaml'
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(provider.to_dict(), f, default_flow_style=False, sort_keys=False)
    logger.debug(f"Saved provider config to {path}")
    provider.config_file = path
    return path


def find_provider_for_node(node_name: str) -> Optional[ProviderConfig]:
    """Find the provider whose nodes section lists node_name.

    Provider files that fail to load are skipped with a warning, so one bad
    file does not block nodes of other providers.

    Raises:
        ConfigError: If no readable provider lists the node and some provider
            files could not be loaded (the node may live in one of them)
    """
    broken: list[str] = []
    for name in list_providers():
        try:
            provider = load_provider_config(name)
        except ConfigError as e:
            logger.warning(f"Skipping provider '{name}': {e}")
            broken.append(name)
            continue
        if node_name in provider.nodes:
            return provider
    if broken:
        raise ConfigError(
            f"Node '{node_name}' not found in any readable provider; "
            f"could not load: {', '.join(broken)}")
    return None
