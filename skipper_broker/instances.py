"""Service instance lifecycle on top of the release engine.

A service instance is a release named after the instance id. Nothing is
stored locally: each call asks the release engine for the current state.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from .catalog import CatalogService
from .collaborators import ReleaseService
from .config_values import APPLICATION_PROPERTIES_PREFIX, convert_to_yaml
from .errors import ParameterValidationError, ReleaseNotFoundError, UnsupportedOperationError
from .models import (
    BrokerConfig,
    ConfigValues,
    CreateInstanceRequest,
    CreateInstanceResponse,
    DeleteInstanceResponse,
    InstallProperties,
    InstallRequest,
    LastOperationResponse,
    OperationState,
    PackageIdentifier,
    StatusCode,
)
from .schema import DEPLOYMENT_PROPERTIES_FIELD, PLATFORM_FIELD, RESERVED_FIELDS, VERSION_FIELD
from .validator import ParameterValidator

logger = logging.getLogger(__name__)

PROVISIONING = "provisioning"
DEPLOYMENT_PROPERTIES_ASSIGNMENT = "spec.deploymentProperties="

OPERATION_STATES: Mapping[StatusCode, OperationState] = MappingProxyType(
    {
        StatusCode.FAILED: OperationState.FAILED,
        StatusCode.DELETED: OperationState.SUCCEEDED,
        StatusCode.UNKNOWN: OperationState.IN_PROGRESS,
        StatusCode.DEPLOYED: OperationState.SUCCEEDED,
        StatusCode.DELETING: OperationState.FAILED,
        StatusCode.SUPERSEDED: OperationState.FAILED,
    }
)

_EXISTING_STATES = (StatusCode.DEPLOYED, StatusCode.UNKNOWN)


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def application_properties(parameters: Mapping[str, Any]) -> List[str]:
    return [
        f"{APPLICATION_PROPERTIES_PREFIX}{key.replace('-', '.')}: {_format_value(value)}"
        for key, value in parameters.items()
        if key not in RESERVED_FIELDS
    ]


def deployment_properties(parameters: Mapping[str, Any]) -> List[str]:
    raw = parameters.get(DEPLOYMENT_PROPERTIES_FIELD)
    if raw is None or not str(raw).strip():
        return []
    entries = []
    for token in str(raw).split(","):
        token = token.strip()
        if not token:
            continue
        if not token.startswith("spec.deploymentProperties"):
            token = DEPLOYMENT_PROPERTIES_ASSIGNMENT + token
        entries.append(token)
    return entries


def install_properties_string(parameters: Mapping[str, Any]) -> str:
    """Flatten provisioning parameters into a comma-separated property string."""
    return ",".join(application_properties(parameters) + deployment_properties(parameters))


def build_install_request(
    package_name: str,
    package_version: Optional[str],
    properties: str,
    release_name: Optional[str],
    platform_name: Optional[str],
) -> InstallRequest:
    install_properties = InstallProperties(platform_name=platform_name)
    if release_name and release_name.strip():
        install_properties.release_name = release_name
    config_yaml = convert_to_yaml(properties)
    if config_yaml.strip():
        install_properties.config_values = ConfigValues(raw=config_yaml)
    return InstallRequest(
        package_identifier=PackageIdentifier(package_name=package_name, package_version=package_version),
        install_properties=install_properties,
    )


class InstanceService:
    def __init__(
        self,
        release_service: ReleaseService,
        catalog_service: Optional[CatalogService] = None,
        config: Optional[BrokerConfig] = None,
    ):
        self.release_service = release_service
        self.catalog_service = catalog_service
        self.config = config or BrokerConfig()
        self.validator = ParameterValidator()

    def create_instance(self, request: CreateInstanceRequest) -> CreateInstanceResponse:
        logger.debug("Creating service instance: %s", request)

        try:
            status_code = self.release_service.status(request.instance_id).status.status_code
            if status_code in _EXISTING_STATES:
                return CreateInstanceResponse(async_=False, operation=PROVISIONING, instance_existed=True)
        except ReleaseNotFoundError:
            logger.debug("Release doesn't exist. Deploying...")

        self._validate(request)
        self._deploy(request)
        return CreateInstanceResponse(async_=True, operation=PROVISIONING, instance_existed=False)

    def get_last_operation(self, instance_id: str) -> LastOperationResponse:
        logger.debug("Getting last operation: %s", instance_id)
        try:
            info = self.release_service.status(instance_id)
        except ReleaseNotFoundError:
            logger.debug("Could not find release: %s", instance_id)
            return LastOperationResponse(state=OperationState.FAILED)

        state = OPERATION_STATES.get(info.status.status_code, OperationState.FAILED)
        return LastOperationResponse(state=state, description=info.description)

    def delete_instance(self, instance_id: str) -> DeleteInstanceResponse:
        logger.debug("Deleting release: %s", instance_id)
        try:
            deleted = self.release_service.delete(instance_id)
            logger.debug("Deleted release: %s", deleted)
        except ReleaseNotFoundError:
            logger.warning("Could not find release: %s", instance_id)
        return DeleteInstanceResponse(async_=True)

    def update_instance(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("Updating service instance not supported")

    def _validate(self, request: CreateInstanceRequest) -> None:
        if not self.config.validate_parameters or self.catalog_service is None:
            return
        if not self.catalog_service.has_catalog:
            logger.debug("No catalog fetched yet. Building one to validate %s", request.instance_id)
            self.catalog_service.get_catalog()
        service_id = request.service_definition_id or request.package_name
        plan = self.catalog_service.get_service_definition(service_id).find_plan(request.plan_id)
        if plan is None:
            raise ParameterValidationError([f"Unknown plan '{request.plan_id}'"], plan_id=request.plan_id)
        errors = self.validator.validate(plan, request.parameters)
        if errors:
            raise ParameterValidationError(errors, plan_id=request.plan_id)

    def _deploy(self, request: CreateInstanceRequest) -> None:
        parameters: Dict[str, Any] = request.parameters
        properties = install_properties_string(parameters)
        logger.debug("Using application install properties: %s", properties)

        version = parameters.get(VERSION_FIELD)
        platform = parameters.get(PLATFORM_FIELD)
        install_request = build_install_request(
            request.package_name,
            None if version is None else str(version),
            properties,
            request.instance_id,
            None if platform is None else str(platform),
        )
        self.release_service.install(install_request)
