"""Metadata about the AWS infrastructure that hosts the traced application."""

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

__all__ = [
    "EB_SERVICE_NAME",
    "EC2_SERVICE_NAME",
    "ECS_SERVICE_NAME",
    "EC2Metadata",
    "ECSMetadata",
    "BeanstalkMetadata",
    "PluginMetadata",
    "INSTANCE_PLUGIN_METADATA",
]

EB_SERVICE_NAME = "elastic_beanstalk"
EC2_SERVICE_NAME = "ec2"
ECS_SERVICE_NAME = "ecs"


def _json_field(key: str, default: Any) -> Any:
    return field(default=default, metadata={"json": key})


def _as_json(obj: Any) -> dict[str, Any]:
    return {f.metadata["json"]: getattr(obj, f.name) for f in fields(obj)}


@dataclass
class EC2Metadata:
    """The EC2 instance ID and availability zone."""

    instance_id: str = _json_field("instance_id", "")
    availability_zone: str = _json_field("availability_zone", "")


@dataclass
class ECSMetadata:
    """The ECS container name."""

    container_name: str = _json_field("container", "")


@dataclass
class BeanstalkMetadata:
    """The Elastic Beanstalk environment name, version label and deployment ID."""

    environment: str = _json_field("environment_name", "")
    version_label: str = _json_field("version_label", "")
    deployment_id: int = _json_field("deployment_id", 0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BeanstalkMetadata":
        """Build from a decoded Elastic Beanstalk configuration document.

        Missing keys keep their defaults; values of the wrong type raise
        ValueError.
        """
        if not isinstance(data, Mapping):
            raise ValueError("Elastic Beanstalk configuration must be a JSON object")
        values: dict[str, Any] = {}
        for f in fields(cls):
            key = f.metadata["json"]
            if key not in data or data[key] is None:
                continue
            value = data[key]
            expected = type(f.default)
            if expected is int:
                ok = isinstance(value, int) and not isinstance(value, bool)
            else:
                ok = isinstance(value, expected)
            if not ok:
                raise ValueError(
                    f"invalid value for {key!r}: expected {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
            values[f.name] = value
        return cls(**values)


@dataclass
class PluginMetadata:
    """Information about the AWS resources running the application."""

    ec2_metadata: Optional[EC2Metadata] = None
    beanstalk_metadata: Optional[BeanstalkMetadata] = None
    ecs_metadata: Optional[ECSMetadata] = None
    origin: str = ""

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return the collected service metadata keyed by service name.

        Services without metadata are left out; the origin is not included.
        """
        result: dict[str, dict[str, Any]] = {}
        if self.ec2_metadata is not None:
            result[EC2_SERVICE_NAME] = _as_json(self.ec2_metadata)
        if self.beanstalk_metadata is not None:
            result[EB_SERVICE_NAME] = _as_json(self.beanstalk_metadata)
        if self.ecs_metadata is not None:
            result[ECS_SERVICE_NAME] = _as_json(self.ecs_metadata)
        return result


INSTANCE_PLUGIN_METADATA = PluginMetadata()