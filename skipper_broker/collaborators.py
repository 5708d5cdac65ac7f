"""Contracts for the systems the broker talks to, plus in-memory stand-ins.

The broker never deploys anything itself. Package metadata, package
content, manifest rendering, artifact metadata and releases all come from
collaborators implementing the abstract classes below. The in-memory
implementations are deterministic and back local development and tests.
"""

from __future__ import annotations

import abc
import copy
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from .errors import ReleaseNotFoundError
from .models import (
    ApplicationManifest,
    ConfigurationProperty,
    Deployer,
    Info,
    InstallRequest,
    PackageContent,
    PackageMetadata,
    Release,
    Status,
    StatusCode,
)

logger = logging.getLogger(__name__)


class PackageMetadataRepository(abc.ABC):
    @abc.abstractmethod
    def find_all(self) -> List[PackageMetadata]:
        raise NotImplementedError


class PackageService(abc.ABC):
    @abc.abstractmethod
    def download_package(self, metadata: PackageMetadata) -> PackageContent:
        raise NotImplementedError


class ConfigMerger(abc.ABC):
    @abc.abstractmethod
    def merge(self, package: PackageContent, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        raise NotImplementedError


class ManifestRenderer(abc.ABC):
    @abc.abstractmethod
    def render(self, package: PackageContent, merged_config: Mapping[str, Any]) -> str:
        raise NotImplementedError


class ManifestReader(abc.ABC):
    @abc.abstractmethod
    def read(self, manifest: str) -> List[ApplicationManifest]:
        raise NotImplementedError


class ArtifactMetadataResolver(abc.ABC):
    @abc.abstractmethod
    def list_properties(self, resource: str) -> List[ConfigurationProperty]:
        raise NotImplementedError


class DeployerRepository(abc.ABC):
    @abc.abstractmethod
    def find_all(self) -> List[Deployer]:
        raise NotImplementedError


class ReleaseService(abc.ABC):
    """Release engine. Lookups of unknown releases raise ReleaseNotFoundError."""

    @abc.abstractmethod
    def status(self, release_name: str) -> Info:
        raise NotImplementedError

    @abc.abstractmethod
    def install(self, request: InstallRequest) -> Release:
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, release_name: str) -> Release:
        raise NotImplementedError


class InMemoryPackageRepository(PackageMetadataRepository, PackageService):
    """Package metadata and content held in memory, in registration order."""

    def __init__(self, packages: Optional[Iterable[PackageContent]] = None):
        self._packages: List[PackageContent] = []
        for package in packages or ():
            self.add(package)

    def add(self, package: PackageContent) -> None:
        self._packages.append(package)

    def find_all(self) -> List[PackageMetadata]:
        return [package.metadata for package in self._packages]

    def download_package(self, metadata: PackageMetadata) -> PackageContent:
        for package in self._packages:
            if package.metadata.name == metadata.name and package.metadata.version == metadata.version:
                return package
        raise LookupError(f"Package {metadata.name}-{metadata.version} not found")


class ValuesConfigMerger(ConfigMerger):
    """Deep-merges the package's default values with override values."""

    def merge(self, package: PackageContent, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        defaults = yaml.safe_load(package.values) if package.values.strip() else {}
        if not isinstance(defaults, dict):
            raise ValueError(f"Values of package {package.metadata.name} must be a YAML mapping.")
        merged = copy.deepcopy(defaults)
        _deep_merge(merged, overrides or {})
        return merged


def _deep_merge(target: Dict[str, Any], overrides: Mapping[str, Any]) -> None:
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class TemplateManifestRenderer(ManifestRenderer):
    """Replaces ``{{ dotted.path }}`` placeholders with merged config values."""

    PLACEHOLDER = re.compile(r"\{\{\s*([\w.\-]+)\s*\}\}")

    def render(self, package: PackageContent, merged_config: Mapping[str, Any]) -> str:
        def substitute(match: re.Match) -> str:
            value = _lookup(merged_config, match.group(1))
            if value is None:
                return ""
            if isinstance(value, bool):
                return "true" if value else "false"
            return str(value)

        return self.PLACEHOLDER.sub(substitute, package.template)


def _lookup(config: Mapping[str, Any], path: str) -> Any:
    node: Any = config
    for segment in path.split("."):
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return node


class YamlManifestReader(ManifestReader):
    """Reads a multi-document YAML manifest into application manifests."""

    def read(self, manifest: str) -> List[ApplicationManifest]:
        manifests = []
        for document in yaml.safe_load_all(manifest):
            if not document:
                continue
            if not isinstance(document, dict):
                raise ValueError("Each manifest document must be a YAML mapping.")
            manifests.append(ApplicationManifest.model_validate(document))
        return manifests


class StaticMetadataResolver(ArtifactMetadataResolver):
    """Returns configured properties per resource; unknown resources have none."""

    def __init__(self, properties: Optional[Mapping[str, List[ConfigurationProperty]]] = None):
        self._properties = dict(properties or {})
        self.requested: List[str] = []

    def list_properties(self, resource: str) -> List[ConfigurationProperty]:
        self.requested.append(resource)
        return list(self._properties.get(resource, []))


class InMemoryDeployerRepository(DeployerRepository):
    def __init__(self, deployers: Optional[Iterable[Deployer]] = None):
        self._deployers = list(deployers or ())

    def find_all(self) -> List[Deployer]:
        return list(self._deployers)


class InMemoryReleaseService(ReleaseService):
    """Deterministic release engine for testing.

    Installed releases start in ``install_status`` and can be moved along
    with :meth:`set_status`. Every install request is kept in ``installs``.
    """

    def __init__(self, install_status: StatusCode = StatusCode.DEPLOYED):
        self.install_status = install_status
        self.installs: List[InstallRequest] = []
        self._releases: Dict[str, Release] = {}

    def status(self, release_name: str) -> Info:
        return self._get(release_name).info

    def install(self, request: InstallRequest) -> Release:
        self.installs.append(request)
        name = request.install_properties.release_name or f"{request.package_identifier.package_name}-release"
        previous = self._releases.get(name)
        release = Release(
            name=name,
            version=previous.version + 1 if previous else 1,
            platform_name=request.install_properties.platform_name,
            package_identifier=request.package_identifier,
            config_values=request.install_properties.config_values,
            info=Info(
                status=Status(status_code=self.install_status),
                description="Install complete" if self.install_status == StatusCode.DEPLOYED else None,
            ),
        )
        self._releases[name] = release
        logger.debug("Installed release %s version %s", name, release.version)
        return release

    def delete(self, release_name: str) -> Release:
        release = self._get(release_name)
        release.info = Info(status=Status(status_code=StatusCode.DELETED), description="Delete complete")
        return release

    def set_status(self, release_name: str, status_code: StatusCode, description: Optional[str] = None) -> None:
        self._get(release_name).info = Info(status=Status(status_code=status_code), description=description)

    def _get(self, release_name: str) -> Release:
        try:
            return self._releases[release_name]
        except KeyError:
            raise ReleaseNotFoundError(release_name) from None
