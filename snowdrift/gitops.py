import logging
import os
import re
from typing import Any, Optional

import yaml
from inflection import pluralize
from pathspec import PathSpec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern

from .provider_config import ProviderConfig, ResourceConfig
from .resources import RESOURCES

logger = logging.getLogger("snowdrift")

ALIASES = {
    "account_role_grants": "grant_privileges_to_account_role",
    "database_role_grants": "grant_privileges_to_database_role",
    "ownership_grants": "grant_ownership",
}

# Keys listing several grantees, each one becomes a resource of its own
FAN_OUT_KEYS = {
    "account_role_names": "account_role_name",
    "database_role_names": "database_role_name",
}

VAR_PATTERN = re.compile(r"\{\{\s*var\.(\w+)\s*\}\}")

IGNORE_FILE = ".snowdriftignore"


def construct_string_on_off(loader, node):
    """Custom constructor for YAML bool values to handle 'on' and 'off' as strings."""
    value = loader.construct_scalar(node)
    if value in ("on", "off"):
        return value  # treat as string
    # fallback to default bool constructor for other values
    return yaml.constructor.SafeConstructor.construct_yaml_bool(loader, node)


yaml.add_constructor("tag:yaml.org,2002:bool", construct_string_on_off, yaml.SafeLoader)


def string_contains_var(value: str) -> bool:
    return VAR_PATTERN.search(value) is not None


def substitute_vars(value, vars: dict):
    """
    Replace {{ var.name }} references in every string of `value`.

    A string made of a single reference takes the var's value as is, so
    numbers and lists survive.
    """
    if isinstance(value, dict):
        return {key: substitute_vars(item, vars) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_vars(item, vars) for item in value]
    if not isinstance(value, str) or not string_contains_var(value):
        return value

    def lookup(name: str):
        if name not in vars:
            raise ValueError(f"Var `{name}` not found")
        return vars[name]

    whole = VAR_PATTERN.fullmatch(value.strip())
    if whole:
        return lookup(whole.group(1))
    return VAR_PATTERN.sub(lambda match: str(lookup(match.group(1))), value)


def _fan_out(resource_data: dict) -> list[dict]:
    for many_key, one_key in FAN_OUT_KEYS.items():
        if many_key in resource_data:
            if one_key in resource_data:
                raise ValueError(f"Cannot specify both `{one_key}` and `{many_key}`")
            names = resource_data[many_key]
            if not isinstance(names, list) or len(names) == 0:
                raise ValueError(f"`{many_key}` must be a non-empty list, got: `{names}`")
            rest = {key: value for key, value in resource_data.items() if key != many_key}
            return [{**rest, one_key: name} for name in names]
    return [resource_data]


def _resources_for_config(config: dict, vars: dict) -> list[ResourceConfig]:
    config_blocks = []

    for label in RESOURCES:
        block = config.pop(pluralize(label), [])
        if block:
            config_blocks.append((label, block))

    for alias, label in ALIASES.items():
        if alias in config:
            config_blocks.append((label, config.pop(alias)))

    resources = []
    for label, block in config_blocks:
        if not isinstance(block, list):
            raise ValueError(f"`{pluralize(label)}` must be a list, got: `{block}`")
        for resource_data in block:
            if not isinstance(resource_data, dict):
                raise ValueError(f"Unknown resource data type: {resource_data}")
            for expanded in _fan_out(substitute_vars(resource_data, vars)):
                resources.append(ResourceConfig(label=label, config=expanded))
    return resources


def collect_provider_config(yaml_config: dict, cli_config: Optional[dict[str, Any]] = None) -> ProviderConfig:
    yaml_config_ = yaml_config.copy()
    cli_config_ = cli_config.copy() if cli_config else {}
    provider_args: dict[str, Any] = {}

    for key in ["threads", "dry_run", "warn_on_unobservable", "default_outbound_privileges"]:
        if key in yaml_config_ and key in cli_config_:
            raise ValueError(f"Cannot specify `{key}` in both yaml config and cli")
        value = yaml_config_.pop(key, None)
        if value is None:
            value = cli_config_.pop(key, None)
        if value is not None:
            provider_args[key] = value

    yaml_vars = yaml_config_.pop("vars", {}) or {}
    if not isinstance(yaml_vars, dict):
        raise ValueError("vars config entry must be a dictionary")
    vars = yaml_vars.copy()
    vars.update(cli_config_.pop("vars", {}) or {})
    provider_args["vars"] = vars

    resources = _resources_for_config(yaml_config_, vars)
    if len(resources) == 0:
        raise ValueError("No resources found in config")
    provider_args["resources"] = resources

    if yaml_config_:
        raise ValueError(f"Unknown keys in config: `{yaml_config_.keys()}`")

    return ProviderConfig(**provider_args)


def crawl(path: str):
    # Load .snowdriftignore patterns if the file exists
    ignore_path = os.path.join(path, IGNORE_FILE)
    if os.path.exists(ignore_path):
        with open(ignore_path) as f:
            spec = PathSpec.from_lines(GitWildMatchPattern, f.readlines())
    else:
        spec = PathSpec([])

    if os.path.isfile(path):
        yield path
        return

    for root, _, files in os.walk(path):
        for file in sorted(files):
            if file.endswith(".yaml") or file.endswith(".yml"):
                full_path = os.path.join(root, file)
                # Ignore patterns match paths relative to the crawled directory
                rel_path = os.path.relpath(full_path, path)
                if not spec.match_file(rel_path):
                    yield full_path


def read_config(config_path) -> dict:
    with open(config_path, "r") as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing YAML file: `{config_path}`") from e
    return config or {}


def merge_configs(config1: dict, config2: dict) -> dict:
    merged = config1.copy()
    for key, value in config2.items():
        if key in merged:
            if isinstance(merged[key], list):
                merged[key] = merged[key] + value
            elif merged[key] is None:
                merged[key] = value
            else:
                raise ValueError(f"Found a conflict for key `{key}` with {value} and {merged[key]}")
        else:
            merged[key] = value
    return merged


def collect_configs_from_path(path: str) -> list[tuple[str, dict]]:
    configs = []

    if not os.path.exists(path):
        raise ValueError(f"Invalid path: `{path}`. Must be a file or directory.")

    for file in crawl(path):
        config = read_config(file)
        configs.append((file, config))

    if len(configs) == 0:
        raise ValueError(f"No valid YAML files were read from the given path: {path}")

    return configs


def collect_vars_from_environment() -> dict:
    vars = {}
    for key, value in os.environ.items():
        if key.startswith("SNOWDRIFT_VAR_"):
            vars[key[len("SNOWDRIFT_VAR_") :].lower()] = value
    return vars


def merge_vars(vars: dict, other_vars: dict) -> dict:
    for key in other_vars.keys():
        if key in vars:
            raise ValueError(f"Conflicting var found: '{key}'")
    merged = vars.copy()
    merged.update(other_vars)
    return merged


def load_provider_config(path: str, cli_config: Optional[dict[str, Any]] = None) -> ProviderConfig:
    """Read every YAML file under `path` into one provider configuration."""
    yaml_config: dict = {}
    for file, config in collect_configs_from_path(path):
        logger.info(f"Read config from {file}")
        yaml_config = merge_configs(yaml_config, config)

    cli_config_ = cli_config.copy() if cli_config else {}
    cli_config_["vars"] = merge_vars(collect_vars_from_environment(), cli_config_.get("vars", {}) or {})
    return collect_provider_config(yaml_config, cli_config_)
