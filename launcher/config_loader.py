# launcher/config_loader.py
import os
import yaml
from datetime import datetime
from pathlib import Path

from launcher.errors import ConfigError
from launcher.launch_spec import DEFAULT_INSTANCE_READY_TIMEOUT, LaunchSpec

RUNTIME_CONFIG_PATH = Path("config/runtime.yaml")

ENV_KEYS = {
    "region": "AWS_REGION",
    "ami": "AMI_ID",
    "instance_type": "INSTANCE_TYPE",
    "keypair_name": "SSH_KEY_NAME",
    "subnet_id": "SUBNET_ID",
    "security_groups": "SECURITY_GROUPS",
    "spot_instance": "SPOT_INSTANCE",
    "spot_max_price": "MAX_SPOT_PRICE",
    "instance_ready_timeout": "INSTANCE_READY_TIMEOUT",
    "ssh_user": "SSH_USER",
    "ssh_key_path": "SSH_KEY_PATH",
    "profile": "AWS_PROFILE",
}


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes")


def load_runtime_config(path=None):
    """
    Loads launcher configuration.
    Priority:
      1) Environment variables
      2) config/runtime.yaml (if present)
    """
    path = Path(path) if path else RUNTIME_CONFIG_PATH
    cfg = {}

    if path.exists():
        with open(path) as f:
            cfg = yaml.safe_load(f) or {}

    merged = {k: v for k, v in cfg.items() if k != "regions"}
    for key, env_name in ENV_KEYS.items():
        value = os.getenv(env_name)
        if value is None:
            continue
        if key == "security_groups":
            value = [g.strip() for g in value.split(",") if g.strip()]
        elif key == "spot_instance":
            value = _as_bool(value)
        elif key == "instance_ready_timeout":
            value = int(value)
        merged[key] = value

    merged["regions"] = cfg.get("regions") or {}
    merged["raw"] = cfg
    return merged


def region_config(cfg, region=None):
    """Top-level settings with the per-region overrides for `region` applied on top."""
    region = region or cfg.get("region")
    values = {k: v for k, v in cfg.items() if k not in ("regions", "raw")}
    values.update((cfg.get("regions") or {}).get(region) or {})
    values["region"] = region
    return values


def _parse_valid_until(value):
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ConfigError(f"spot_valid_until is not an ISO 8601 timestamp: {value!r}")


def load_launch_spec(cfg, region=None) -> LaunchSpec:
    values = region_config(cfg, region)
    security_groups = values.get("security_groups") or []
    if isinstance(security_groups, str):
        security_groups = [security_groups]
    max_price = values.get("spot_max_price")

    return LaunchSpec(
        region=values.get("region"),
        ami=values.get("ami"),
        instance_type=values.get("instance_type"),
        availability_zone=values.get("availability_zone"),
        keypair_name=values.get("keypair_name"),
        private_ip_address=values.get("private_ip_address"),
        security_groups=security_groups,
        subnet_id=values.get("subnet_id"),
        tags=values.get("tags") or {},
        user_data=values.get("user_data"),
        block_device_mapping=values.get("block_device_mapping") or [],
        spot_instance=_as_bool(values.get("spot_instance", False)),
        spot_max_price=str(max_price) if max_price is not None else None,
        spot_valid_until=_parse_valid_until(values.get("spot_valid_until")),
        spot_max_polls=values.get("spot_max_polls"),
        monitoring=_as_bool(values.get("monitoring", False)),
        instance_ready_timeout=int(values.get("instance_ready_timeout") or DEFAULT_INSTANCE_READY_TIMEOUT),
        use_private_ip_address=_as_bool(values.get("use_private_ip_address", False)),
    )


def validate_launch_spec(spec: LaunchSpec):
    errors = []
    if not spec.region:
        errors.append("region is required")
    if not spec.ami:
        errors.append(f"an AMI must be configured for region {spec.region}")
    if not spec.instance_type:
        errors.append("instance_type is required")
    if spec.spot_instance and not spec.spot_max_price:
        errors.append("spot_max_price is required for spot instances")
    if spec.instance_ready_timeout <= 0:
        errors.append("instance_ready_timeout must be positive")
    if spec.spot_max_polls is not None and spec.spot_max_polls < 1:
        errors.append("spot_max_polls must be at least 1")
    if errors:
        raise ConfigError("Invalid launch configuration: " + "; ".join(errors))
