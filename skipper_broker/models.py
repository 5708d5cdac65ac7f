from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

JSON_SCHEMA_DRAFT_04 = "http://json-schema.org/draft-04/schema"

PLAN_ID_BY_NAME = "name"
PLAN_ID_BY_NAME_AND_VERSION = "name:version"


class PackageMetadata(BaseModel):
    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    description: Optional[str] = None
    tags: Optional[str] = Field(default=None, description="Comma-separated tags.")
    display_name: Optional[str] = None
    icon_url: Optional[str] = None
    package_home_url: Optional[str] = None


class PackageContent(BaseModel):
    """A downloaded package: its metadata, default values and manifest template."""

    metadata: PackageMetadata
    values: str = ""
    template: str = ""


class ApplicationSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    resource: Optional[str] = None
    resource_metadata: Optional[str] = Field(default=None, alias="resourceMetadata")
    version: Optional[str] = None
    application_properties: Dict[str, Any] = Field(default_factory=dict, alias="applicationProperties")
    deployment_properties: Dict[str, Any] = Field(default_factory=dict, alias="deploymentProperties")

    @field_validator("version", mode="before")
    def stringify_version(cls, value: Any) -> Any:
        # YAML reads 1.0 as a float
        return None if value is None else str(value)

    @field_validator("application_properties", "deployment_properties", mode="before")
    def none_to_empty(cls, value: Any) -> Any:
        return value or {}


class ApplicationManifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    spec: ApplicationSpec = Field(default_factory=ApplicationSpec)

    @property
    def metadata_resource(self) -> Optional[str]:
        """Artifact whose configuration metadata describes the application."""
        return self.spec.resource_metadata or self.spec.resource


class ConfigurationProperty(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    short_description: Optional[str] = None
    default_value: Any = None
    type: Optional[str] = None


class Deployer(BaseModel):
    name: str = Field(..., min_length=1)
    type: Optional[str] = None
    description: Optional[str] = None


class Plan(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    free: bool = False
    bindable: bool = True
    schemas: Dict[str, Any] = Field(default_factory=dict)

    @property
    def create_parameters_schema(self) -> Dict[str, Any]:
        return self.schemas.get("service_instance", {}).get("create", {}).get("parameters", {})


class ServiceDefinition(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    bindable: bool = False
    plan_updateable: bool = True
    plans: List[Plan] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def find_plan(self, plan_id: str) -> Optional[Plan]:
        return next((plan for plan in self.plans if plan.id == plan_id), None)


class Catalog(BaseModel):
    services: List[ServiceDefinition] = Field(default_factory=list)


class StatusCode(str, Enum):
    UNKNOWN = "unknown"
    DEPLOYED = "deployed"
    DELETED = "deleted"
    FAILED = "failed"
    DELETING = "deleting"
    SUPERSEDED = "superseded"


class Status(BaseModel):
    status_code: StatusCode = StatusCode.UNKNOWN
    platform_status: Optional[str] = None


class Info(BaseModel):
    status: Status = Field(default_factory=Status)
    description: Optional[str] = None


class PackageIdentifier(BaseModel):
    package_name: str
    package_version: Optional[str] = None
    repository_name: Optional[str] = None


class ConfigValues(BaseModel):
    raw: str = ""


class InstallProperties(BaseModel):
    release_name: Optional[str] = None
    platform_name: Optional[str] = None
    config_values: Optional[ConfigValues] = None


class InstallRequest(BaseModel):
    package_identifier: PackageIdentifier
    install_properties: InstallProperties


class Release(BaseModel):
    name: str
    version: int = 1
    platform_name: Optional[str] = None
    package_identifier: Optional[PackageIdentifier] = None
    config_values: Optional[ConfigValues] = None
    info: Info = Field(default_factory=Info)


class OperationState(str, Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CreateInstanceRequest(BaseModel):
    instance_id: str
    plan_id: str
    service_definition_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @property
    def package_name(self) -> str:
        """Name of the package owning the plan; plan ids may carry a ``:version`` suffix."""
        return self.plan_id.partition(":")[0]


class CreateInstanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    async_: bool = Field(default=False, alias="async")
    operation: Optional[str] = None
    instance_existed: bool = False


class LastOperationResponse(BaseModel):
    state: OperationState
    description: Optional[str] = None


class DeleteInstanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    async_: bool = Field(default=False, alias="async")
    operation: Optional[str] = None


@dataclass
class BrokerConfig:
    """Configuration for the catalog and instance services."""

    plan_id_format: str = PLAN_ID_BY_NAME
    validate_parameters: bool = False
    schema_draft: str = JSON_SCHEMA_DRAFT_04
    api_title: str = "Skipper Service Broker"

    def __post_init__(self):
        if self.plan_id_format not in (PLAN_ID_BY_NAME, PLAN_ID_BY_NAME_AND_VERSION):
            raise ValueError(
                f"plan_id_format must be '{PLAN_ID_BY_NAME}' or '{PLAN_ID_BY_NAME_AND_VERSION}', "
                f"got '{self.plan_id_format}'"
            )

    @classmethod
    def from_env(cls, prefix: str = "SKIPPER_BROKER_") -> "BrokerConfig":
        defaults = cls()
        validate = os.getenv(f"{prefix}VALIDATE_PARAMETERS")
        return cls(
            plan_id_format=os.getenv(f"{prefix}PLAN_ID_FORMAT") or defaults.plan_id_format,
            validate_parameters=(
                validate.strip().lower() in {"1", "true", "yes", "on"}
                if validate
                else defaults.validate_parameters
            ),
            schema_draft=os.getenv(f"{prefix}SCHEMA_DRAFT") or defaults.schema_draft,
            api_title=os.getenv(f"{prefix}API_TITLE") or defaults.api_title,
        )
