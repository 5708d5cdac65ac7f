"""Input schemas surfaced for each catalog plan.

A plan schema lists the configuration properties of the packaged
application plus three synthetic fields (``version``, ``platform`` and
``deploymentProperties``) that steer the install request.
"""

from __future__ import annotations

import unicodedata
from typing import Any, Dict, Iterable, List, Optional

from .models import JSON_SCHEMA_DRAFT_04, ConfigurationProperty

VERSION_FIELD = "version"
PLATFORM_FIELD = "platform"
DEPLOYMENT_PROPERTIES_FIELD = "deploymentProperties"

RESERVED_FIELDS = (VERSION_FIELD, PLATFORM_FIELD, DEPLOYMENT_PROPERTIES_FIELD)

_JAVA_LANG_PREFIX = "java.lang."


def split_camel_case(text: str) -> List[str]:
    """Split on changes of character category, keeping ``Ab`` runs together.

    ``"maxReplicas"`` gives ``["max", "Replicas"]`` and ``"ASFRules"`` gives
    ``["ASF", "Rules"]``.
    """
    if not text:
        return []
    tokens: List[str] = []
    token_start = 0
    current = unicodedata.category(text[0])
    for pos in range(1, len(text)):
        category = unicodedata.category(text[pos])
        if category == current:
            continue
        if category == "Ll" and current == "Lu":
            new_start = pos - 1
            if new_start != token_start:
                tokens.append(text[token_start:new_start])
                token_start = new_start
        else:
            tokens.append(text[token_start:pos])
            token_start = pos
        current = category
    tokens.append(text[token_start:])
    return tokens


def property_title(name: str) -> str:
    joined = " ".join(split_camel_case(name))
    return joined[:1].upper() + joined[1:]


def property_type(declared: Optional[str]) -> str:
    if not declared:
        return "string"
    return declared.replace(_JAVA_LANG_PREFIX, "").lower()


def property_key(property_id: str) -> str:
    return property_id.replace(".", "-")


def default_version(versions: str) -> str:
    head, comma, _ = versions.partition(",")
    return head if comma and head.strip() else versions.strip()


def default_platform(platforms: str) -> str:
    # Everything after the first platform, unlike default_version.
    tail = platforms.partition(",")[2]
    chosen = tail if tail.strip() else platforms
    return chosen.strip()


def build_property_schema(prop: ConfigurationProperty) -> Dict[str, Any]:
    return {
        "title": property_title(prop.name),
        "description": prop.short_description,
        "default": prop.default_value,
        "type": property_type(prop.type),
    }


def build_parameters_schema(
    properties: Iterable[ConfigurationProperty],
    versions: str,
    platforms: str,
    *,
    draft: str = JSON_SCHEMA_DRAFT_04,
) -> Dict[str, Any]:
    schema_properties: Dict[str, Any] = {}
    for prop in properties:
        schema_properties[property_key(prop.id)] = build_property_schema(prop)

    schema_properties[VERSION_FIELD] = {
        "title": "Versions",
        "description": f"Choose from one of the following versions: {versions}",
        "default": default_version(versions),
        "type": "string",
    }
    schema_properties[PLATFORM_FIELD] = {
        "title": "Platforms",
        "description": f"Choose from one of the following platforms: {platforms}",
        "default": default_platform(platforms),
        "type": "string",
    }
    schema_properties[DEPLOYMENT_PROPERTIES_FIELD] = {
        "title": "Deployment properties",
        "description": "Provide deployment properties to the deployer platform",
        "type": "string",
    }

    return {
        "$schema": draft,
        "type": "object",
        "additionalProperties": False,
        "properties": schema_properties,
    }


def build_plan_schemas(parameters_schema: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a parameters schema the way brokers publish it on a plan."""
    return {"service_instance": {"create": {"parameters": parameters_schema}}}
