from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from .catalog import CatalogBuildError, CatalogService
from .collaborators import (
    InMemoryDeployerRepository,
    InMemoryPackageRepository,
    InMemoryReleaseService,
    StaticMetadataResolver,
    TemplateManifestRenderer,
    ValuesConfigMerger,
    YamlManifestReader,
)
from .errors import ParameterValidationError, ServiceDefinitionNotFoundError, UnsupportedOperationError
from .instances import InstanceService
from .models import BrokerConfig, CreateInstanceRequest


class ProvisionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    service_id: Optional[str] = None
    plan_id: str = Field(..., min_length=1)
    parameters: Optional[Dict[str, Any]] = None


class UpdateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


def create_app(
    *,
    catalog_service: Optional[CatalogService] = None,
    instance_service: Optional[InstanceService] = None,
    config: Optional[BrokerConfig] = None,
) -> FastAPI:
    broker_config = config or BrokerConfig()
    app = FastAPI(title=broker_config.api_title, version="0.1.0")

    @lru_cache
    def get_catalog_service() -> CatalogService:
        return catalog_service or _default_catalog_service(broker_config)

    @lru_cache
    def get_instance_service() -> InstanceService:
        return instance_service or InstanceService(
            InMemoryReleaseService(), catalog_service=get_catalog_service(), config=broker_config
        )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "validate_parameters": broker_config.validate_parameters}

    @app.get("/v2/catalog")
    def get_catalog(catalog: CatalogService = Depends(get_catalog_service)):
        try:
            return catalog.get_catalog().model_dump(by_alias=True)
        except CatalogBuildError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.put("/v2/service_instances/{instance_id}")
    def provision(
        instance_id: str,
        request: ProvisionRequest,
        response: Response,
        instances: InstanceService = Depends(get_instance_service),
    ):
        try:
            result = instances.create_instance(
                CreateInstanceRequest(
                    instance_id=instance_id,
                    service_definition_id=request.service_id,
                    plan_id=request.plan_id,
                    parameters=request.parameters or {},
                )
            )
        except (ServiceDefinitionNotFoundError, ParameterValidationError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        response.status_code = status.HTTP_202_ACCEPTED if result.async_ else status.HTTP_200_OK
        return {"operation": result.operation}

    @app.get("/v2/service_instances/{instance_id}/last_operation")
    def last_operation(instance_id: str, instances: InstanceService = Depends(get_instance_service)):
        return instances.get_last_operation(instance_id).model_dump(mode="json", exclude_none=True)

    @app.delete("/v2/service_instances/{instance_id}", status_code=status.HTTP_202_ACCEPTED)
    def deprovision(instance_id: str, instances: InstanceService = Depends(get_instance_service)):
        instances.delete_instance(instance_id)
        return {}

    @app.patch("/v2/service_instances/{instance_id}")
    def update(
        instance_id: str,
        request: UpdateRequest,
        instances: InstanceService = Depends(get_instance_service),
    ):
        try:
            instances.update_instance(instance_id, request)
        except UnsupportedOperationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return app


def _default_catalog_service(config: BrokerConfig) -> CatalogService:
    # Empty in-memory backends keep the app usable for local dev.
    packages = InMemoryPackageRepository()
    return CatalogService(
        packages,
        packages,
        ValuesConfigMerger(),
        TemplateManifestRenderer(),
        YamlManifestReader(),
        StaticMetadataResolver(),
        InMemoryDeployerRepository(),
        config=config,
    )
