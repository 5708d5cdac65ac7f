from dataclasses import dataclass

import pytest

from skipper_broker.catalog import CatalogService
from skipper_broker.collaborators import (
    InMemoryDeployerRepository,
    InMemoryPackageRepository,
    InMemoryReleaseService,
    StaticMetadataResolver,
    TemplateManifestRenderer,
    ValuesConfigMerger,
    YamlManifestReader,
)
from skipper_broker.models import (
    BrokerConfig,
    ConfigurationProperty,
    Deployer,
    PackageContent,
    PackageMetadata,
)

TEMPLATE = """
apiVersion: skipper.spring.io/v1
kind: SpringCloudDeployerApplication
metadata:
  name: {{ spec.artifact }}
spec:
  resource: maven://org.springframework.cloud.stream.app:{{ spec.artifact }}
  resourceMetadata: maven://org.springframework.cloud.stream.app:{{ spec.artifact }}:jar:metadata:{{ spec.version }}
  version: {{ spec.version }}
"""

LOG_PROPERTIES = [
    ConfigurationProperty(
        id="log.level",
        name="level",
        short_description="The level at which to log messages.",
        default_value="INFO",
        type="java.lang.String",
    ),
    ConfigurationProperty(
        id="log.max-replicas",
        name="maxReplicas",
        short_description="Maximum number of replicas.",
        default_value=1,
        type="java.lang.Integer",
    ),
]


def make_package(name, version, *, description=None, tags=None, display_name=None, artifact=None):
    artifact = artifact or f"{name}-sink-rabbit"
    return PackageContent(
        metadata=PackageMetadata(
            name=name,
            version=version,
            description=description or f"{name} {version}",
            tags=tags,
            display_name=display_name,
            icon_url=f"https://example.com/{name}.png",
            package_home_url=f"https://example.com/{name}",
        ),
        values=f'spec:\n  artifact: {artifact}\n  version: "{version}"\n',
        template=TEMPLATE,
    )


def metadata_resource(artifact, version):
    return f"maven://org.springframework.cloud.stream.app:{artifact}:jar:metadata:{version}"


@dataclass
class Backend:
    packages: InMemoryPackageRepository
    resolver: StaticMetadataResolver
    deployers: InMemoryDeployerRepository
    releases: InMemoryReleaseService

    def catalog_service(self, config=None) -> CatalogService:
        return CatalogService(
            self.packages,
            self.packages,
            ValuesConfigMerger(),
            TemplateManifestRenderer(),
            YamlManifestReader(),
            self.resolver,
            self.deployers,
            config=config or BrokerConfig(),
        )


@pytest.fixture
def backend():
    packages = InMemoryPackageRepository(
        [
            make_package("log", "1.0.0", tags="logging, sink", display_name="Log Sink"),
            make_package("log", "1.1.0", tags="logging, sink", display_name="Log Sink"),
            make_package("time", "2.0.0", tags="source"),
        ]
    )
    resolver = StaticMetadataResolver(
        {
            metadata_resource("log-sink-rabbit", "1.0.0"): LOG_PROPERTIES,
            metadata_resource("log-sink-rabbit", "1.1.0"): LOG_PROPERTIES,
            metadata_resource("time-sink-rabbit", "2.0.0"): [],
        }
    )
    deployers = InMemoryDeployerRepository([Deployer(name="default"), Deployer(name="k8s")])
    return Backend(packages=packages, resolver=resolver, deployers=deployers, releases=InMemoryReleaseService())
