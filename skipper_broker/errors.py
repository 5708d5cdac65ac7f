from __future__ import annotations

from typing import List, Optional


class ReleaseNotFoundError(LookupError):
    """Raised by a release service when no release exists under the given name."""

    def __init__(self, release_name: str):
        self.release_name = release_name
        super().__init__(f"Release with the name [{release_name}] doesn't exist")


class ServiceDefinitionNotFoundError(ValueError):
    def __init__(self, service_id: str):
        self.service_id = service_id
        super().__init__(f"Service definition [{service_id}] does not exist")


class UnsupportedOperationError(NotImplementedError):
    """Raised for broker operations this adapter does not offer."""


class ParameterValidationError(ValueError):
    def __init__(self, errors: List[str], plan_id: Optional[str] = None):
        self.errors = errors
        self.plan_id = plan_id
        target = f" for plan '{plan_id}'" if plan_id else ""
        super().__init__(f"Invalid provisioning parameters{target}: {'; '.join(errors)}")
