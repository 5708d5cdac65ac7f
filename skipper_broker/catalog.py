from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from .collaborators import (
    ArtifactMetadataResolver,
    ConfigMerger,
    DeployerRepository,
    ManifestReader,
    ManifestRenderer,
    PackageMetadataRepository,
    PackageService,
)
from .errors import ServiceDefinitionNotFoundError
from .models import (
    PLAN_ID_BY_NAME_AND_VERSION,
    BrokerConfig,
    Catalog,
    ConfigurationProperty,
    PackageMetadata,
    Plan,
    ServiceDefinition,
)
from .schema import build_parameters_schema, build_plan_schemas

logger = logging.getLogger(__name__)


class CatalogBuildError(RuntimeError):
    """Raised when a package cannot be turned into a catalog plan."""


class CatalogService:
    """Synthesizes the broker catalog from the package repository.

    Every call to :meth:`get_catalog` rebuilds the catalog from scratch and
    replaces the snapshot used by :meth:`get_service_definition`.
    """

    def __init__(
        self,
        package_metadata_repository: PackageMetadataRepository,
        package_service: PackageService,
        config_merger: ConfigMerger,
        manifest_renderer: ManifestRenderer,
        manifest_reader: ManifestReader,
        metadata_resolver: ArtifactMetadataResolver,
        deployer_repository: DeployerRepository,
        config: Optional[BrokerConfig] = None,
    ):
        self.package_metadata_repository = package_metadata_repository
        self.package_service = package_service
        self.config_merger = config_merger
        self.manifest_renderer = manifest_renderer
        self.manifest_reader = manifest_reader
        self.metadata_resolver = metadata_resolver
        self.deployer_repository = deployer_repository
        self.config = config or BrokerConfig()
        self._service_definitions: Mapping[str, ServiceDefinition] = MappingProxyType({})
        self._fetched = False

    def get_catalog(self) -> Catalog:
        logger.debug("Getting catalog...")
        definitions = self.build_service_definitions()
        self._service_definitions = MappingProxyType({definition.id: definition for definition in definitions})
        self._fetched = True
        catalog = Catalog(services=definitions)
        logger.debug("Catalog: %s", catalog)
        return catalog

    @property
    def has_catalog(self) -> bool:
        """Whether a catalog fetch has completed since startup."""
        return self._fetched

    def get_service_definition(self, service_id: str) -> ServiceDefinition:
        definition = self._service_definitions.get(service_id)
        if definition is None:
            raise ServiceDefinitionNotFoundError(service_id)
        return definition

    def build_service_definitions(self) -> List[ServiceDefinition]:
        logger.info("Getting Skipper packages as Service Definitions...")

        packages: Dict[str, List[PackageMetadata]] = {}
        for metadata in self.package_metadata_repository.find_all():
            packages.setdefault(metadata.name, []).append(metadata)

        platforms = ", ".join(deployer.name for deployer in self.deployer_repository.find_all())

        definitions = []
        for name, rows in packages.items():
            versions = ",".join(row.version for row in rows)
            plans: List[Plan] = []
            for row in rows:
                plan = self._build_plan(row, versions, platforms)
                if plan not in plans:
                    plans.append(plan)
            definitions.append(self._build_service_definition(rows[0], plans))
        return definitions

    def _build_plan(self, metadata: PackageMetadata, versions: str, platforms: str) -> Plan:
        properties = self._resolve_properties(metadata)
        parameters = build_parameters_schema(properties, versions, platforms, draft=self.config.schema_draft)
        plan_id = metadata.name
        if self.config.plan_id_format == PLAN_ID_BY_NAME_AND_VERSION:
            plan_id = f"{metadata.name}:{metadata.version}"
        return Plan(
            id=plan_id,
            name=plan_id,
            description=metadata.description,
            bindable=True,
            free=False,
            schemas=build_plan_schemas(parameters),
        )

    def _resolve_properties(self, metadata: PackageMetadata) -> List[ConfigurationProperty]:
        package = self.package_service.download_package(metadata)
        merged = self.config_merger.merge(package, {})
        manifest = self.manifest_renderer.render(package, merged)
        manifests = self.manifest_reader.read(manifest)
        if not manifests:
            raise CatalogBuildError(f"Package {metadata.name}-{metadata.version} has no application manifests")

        # Only the first application describes the plan's inputs.
        resource = manifests[0].metadata_resource
        if not resource:
            raise CatalogBuildError(
                f"First application of package {metadata.name}-{metadata.version} declares no resource"
            )
        return self.metadata_resolver.list_properties(resource)

    @staticmethod
    def _build_service_definition(metadata: PackageMetadata, plans: List[Plan]) -> ServiceDefinition:
        tags = [tag.strip() for tag in (metadata.tags or "").split(",") if tag.strip()]
        return ServiceDefinition(
            id=metadata.name,
            name=metadata.name,
            description=metadata.description,
            bindable=False,
            plan_updateable=True,
            plans=plans,
            tags=tags,
            metadata={
                "displayName": metadata.display_name or metadata.name,
                "imageUrl": metadata.icon_url,
                "supportUrl": metadata.package_home_url,
            },
        )
