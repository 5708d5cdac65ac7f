from __future__ import annotations

from typing import Any, Dict, List

import jsonschema
from jsonschema.exceptions import ValidationError

from .models import Plan

# Types surfaced from artifact metadata that JSON Schema does not know.
_TYPE_ALIASES = {
    "int": "integer",
    "long": "integer",
    "short": "integer",
    "double": "number",
    "float": "number",
    "bigdecimal": "number",
}
_JSON_TYPES = {"string", "integer", "number", "boolean", "object", "array", "null"}


class ParameterValidator:
    """Validates provisioning parameters against a plan's input schema.

    Platforms submit every parameter as a string, so property types only
    constrain values that arrive as JSON numbers or booleans.
    """

    def validate(self, plan: Plan, parameters: Dict[str, Any]) -> List[str]:
        schema = self._relax(plan.create_parameters_schema)
        if not schema:
            return []
        validator = jsonschema.Draft4Validator(schema)
        return [self._format_error(error) for error in validator.iter_errors(parameters)]

    @staticmethod
    def _relax(schema: Dict[str, Any]) -> Dict[str, Any]:
        if not schema:
            return {}
        relaxed = dict(schema)
        properties = {}
        for key, prop in schema.get("properties", {}).items():
            prop = dict(prop)
            declared = _TYPE_ALIASES.get(prop.get("type"), prop.get("type"))
            if declared == "string":
                prop["type"] = "string"
            elif declared in _JSON_TYPES:
                prop["type"] = [declared, "string"]
            else:
                prop.pop("type", None)
            properties[key] = prop
        relaxed["properties"] = properties
        return relaxed

    @staticmethod
    def _format_error(error: ValidationError) -> str:
        path = " > ".join(str(item) for item in error.path)
        prefix = f"{path}: " if path else ""
        return f"{prefix}{error.message}"
