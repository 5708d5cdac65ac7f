"""Convert flat ``key=value`` property strings into a nested YAML document.

Install properties arrive as one comma-separated string such as::

    spec.applicationProperties.max.replicas: 3,spec.deploymentProperties=memory=512

The release engine expects a nested config document instead::

    spec:
      applicationProperties:
        max.replicas: 3
      deploymentProperties:
        memory: 512

Dots before ``spec.`` are path separators. Whatever follows
``spec.applicationProperties.`` or ``spec.deploymentProperties.`` is a
single literal key, because application property names contain dots.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Sequence, Tuple

import yaml

SPEC = "spec"
APPLICATION_PROPERTIES = "applicationProperties"
DEPLOYMENT_PROPERTIES = "deploymentProperties"
SECTIONS = (APPLICATION_PROPERTIES, DEPLOYMENT_PROPERTIES)

APPLICATION_PROPERTIES_PREFIX = f"{SPEC}.{APPLICATION_PROPERTIES}."
DEPLOYMENT_PROPERTIES_PREFIX = f"{SPEC}.{DEPLOYMENT_PROPERTIES}."

_SEPARATOR = re.compile(r"[=:]")

PropertyEntry = Tuple[List[str], Any]


def split_property(token: str) -> Tuple[str, str]:
    """Split ``key=value`` or ``key: value`` at the first separator."""
    match = _SEPARATOR.search(token)
    if not match:
        return token.strip(), ""
    return token[: match.start()].strip(), token[match.end() :].strip()


def key_path(key: str) -> List[str]:
    if key.startswith(f"{SPEC}."):
        spec_at = 0
    else:
        found = key.find(f".{SPEC}.")
        if found < 0:
            return key.split(".")
        spec_at = found + 1

    head = key[: spec_at - 1].split(".") if spec_at else []
    rest = key[spec_at:]
    for section in SECTIONS:
        section_key = f"{SPEC}.{section}"
        if rest == section_key:
            return head + [SPEC, section]
        if rest.startswith(section_key + "."):
            return head + [SPEC, section, rest[len(section_key) + 1 :]]
    return head + [rest]


def _is_bare_section(path: Sequence[str]) -> bool:
    return len(path) >= 2 and path[-2] == SPEC and path[-1] in SECTIONS


def coerce_scalar(value: str) -> Any:
    """Type numbers and booleans whose YAML reading prints back as the same text.

    Anything else, such as ``1.10``, ``010``, ``12:30`` or ``off``, stays as typed.
    """
    if not value:
        return value
    try:
        loaded = yaml.safe_load(value)
    except yaml.YAMLError:
        return value
    if isinstance(loaded, bool):
        rendered = "true" if loaded else "false"
    elif isinstance(loaded, (int, float)):
        rendered = str(loaded)
    else:
        return value
    return loaded if rendered == value else value


def parse_properties(properties: str) -> List[PropertyEntry]:
    entries: List[PropertyEntry] = []
    for token in properties.split(","):
        if not token.strip():
            continue
        key, value = split_property(token)
        path = key_path(key)
        if _is_bare_section(path) and _SEPARATOR.search(value):
            # spec.deploymentProperties=memory=512
            leaf, value = split_property(value)
            path = path + [leaf]
        entries.append((path, coerce_scalar(value)))
    return entries


def build_tree(entries: Sequence[PropertyEntry]) -> Dict[str, Any]:
    """Expand path/value pairs into nested mappings; later entries win."""
    tree: Dict[str, Any] = {}
    for path, value in entries:
        node = tree
        for segment in path[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[path[-1]] = value
    return tree


def convert_to_yaml(properties: str) -> str:
    """Turn a comma-separated property string into a YAML config document.

    Returns an empty string when there is nothing to convert.
    """
    if not properties or not properties.strip():
        return ""
    tree = build_tree(parse_properties(properties))
    if not tree:
        return ""
    return yaml.safe_dump(tree, default_flow_style=False, sort_keys=False)
