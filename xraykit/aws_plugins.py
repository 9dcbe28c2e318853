"""Plugins that record the AWS resource hosting the traced application.

Each plugin fills one part of a :class:`~xraykit.plugins.PluginMetadata` and
sets its origin. Failures are logged and leave the metadata untouched.
"""

import json
import socket
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from xraykit import logger, plugins
from xraykit.plugins import BeanstalkMetadata, EC2Metadata, ECSMetadata, PluginMetadata

__all__ = [
    "BEANSTALK_ORIGIN",
    "EC2_ORIGIN",
    "ECS_ORIGIN",
    "BEANSTALK_CONFIG_PATH",
    "IMDS_URL",
    "add_beanstalk_metadata",
    "init_beanstalk",
    "get_token",
    "get_metadata",
    "add_ec2_metadata",
    "init_ec2",
    "add_ecs_metadata",
    "init_ecs",
]

BEANSTALK_ORIGIN = "AWS::ElasticBeanstalk::Environment"
EC2_ORIGIN = "AWS::EC2::Instance"
ECS_ORIGIN = "AWS::ECS::Container"

BEANSTALK_CONFIG_PATH = "/var/elasticbeanstalk/xray/environment.conf"
IMDS_URL = "http://169.254.169.254/latest/"

_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
_TOKEN_TTL = "60"
_TOKEN_HEADER = "X-aws-ec2-metadata-token"
_DEFAULT_TIMEOUT = 30.0


def add_beanstalk_metadata(
    plugin_metadata: PluginMetadata,
    config_path: Union[str, Path] = BEANSTALK_CONFIG_PATH,
) -> None:
    """Read the Elastic Beanstalk configuration file into ``plugin_metadata``."""
    try:
        raw = Path(config_path).read_bytes()
    except OSError as exc:
        logger.errorf(
            "Unable to read Elastic Beanstalk configuration file %s: %s", config_path, exc
        )
        return

    try:
        document = json.loads(raw)
        config = BeanstalkMetadata.from_dict({} if document is None else document)
    except ValueError as exc:
        logger.errorf(
            "Unable to unmarshal Elastic Beanstalk configuration file %s: %s",
            config_path,
            exc,
        )
        return

    plugin_metadata.beanstalk_metadata = config
    plugin_metadata.origin = BEANSTALK_ORIGIN


def init_beanstalk() -> None:
    """Activate the Elastic Beanstalk plugin on the shared plugin metadata."""
    metadata = plugins.INSTANCE_PLUGIN_METADATA
    if metadata is not None and metadata.beanstalk_metadata is None:
        add_beanstalk_metadata(metadata)


def _fetch(request: urllib.request.Request, timeout: Optional[float]) -> bytes:
    # Error statuses still carry a body, which is returned as is.
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return response.read()
    except urllib.error.HTTPError as exc:
        with exc:
            return exc.read()


def get_token(imds_url: str, timeout: Optional[float] = _DEFAULT_TIMEOUT) -> str:
    """Fetch a session token from the instance metadata service.

    Raises OSError if the request fails and ValueError if the URL is invalid.
    """
    request = urllib.request.Request(imds_url + "api/token", method="PUT")
    request.add_header(_TOKEN_TTL_HEADER, _TOKEN_TTL)
    return _fetch(request, timeout).decode("utf-8", errors="replace")


def get_metadata(
    imds_url: str, token: str = "", timeout: Optional[float] = _DEFAULT_TIMEOUT
) -> bytes:
    """Fetch the instance identity document, using ``token`` when it is not empty.

    Raises OSError if the request fails and ValueError if the URL is invalid.
    """
    request = urllib.request.Request(
        imds_url + "dynamic/instance-identity/document", method="GET"
    )
    if token:
        request.add_header(_TOKEN_HEADER, token)
    return _fetch(request, timeout)


def _lookup_str(document: Mapping[str, Any], name: str) -> str:
    if name in document:
        value = document[name]
    else:
        lowered = name.lower()
        value = next(
            (v for k, v in document.items() if k.lower() == lowered), None
        )
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"invalid value for {name!r}: expected str")
    return value


def add_ec2_metadata(plugin_metadata: PluginMetadata, imds_url: str = IMDS_URL) -> None:
    """Query the instance metadata service and record the instance in ``plugin_metadata``."""
    try:
        token = get_token(imds_url)
    except (OSError, ValueError) as exc:
        logger.debugf(
            "Unable to fetch EC2 instance metadata token fallback to IMDS V1: %s", exc
        )
        token = ""

    try:
        body = get_metadata(imds_url, token)
    except (OSError, ValueError) as exc:
        logger.errorf("Unable to read EC2 instance metadata: %s", exc)
        return

    try:
        document = json.loads(body)
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ValueError("instance identity document is not a JSON object")
        instance_id = _lookup_str(document, "InstanceID")
        availability_zone = _lookup_str(document, "AvailabilityZone")
    except ValueError as exc:
        logger.errorf("Error while unmarshal operation: %s", exc)
        return

    plugin_metadata.ec2_metadata = EC2Metadata(
        instance_id=instance_id, availability_zone=availability_zone
    )
    plugin_metadata.origin = EC2_ORIGIN


def init_ec2() -> None:
    """Activate the EC2 plugin on the shared plugin metadata."""
    metadata = plugins.INSTANCE_PLUGIN_METADATA
    if metadata is not None and metadata.ec2_metadata is None:
        add_ec2_metadata(metadata)


def add_ecs_metadata(plugin_metadata: PluginMetadata) -> None:
    """Record the container's host name in ``plugin_metadata``."""
    try:
        hostname = socket.gethostname()
    except OSError as exc:
        logger.errorf("Unable to retrieve hostname from OS. %s", exc)
        return

    plugin_metadata.ecs_metadata = ECSMetadata(container_name=hostname)
    plugin_metadata.origin = ECS_ORIGIN


def init_ecs() -> None:
    """Activate the ECS plugin on the shared plugin metadata."""
    metadata = plugins.INSTANCE_PLUGIN_METADATA
    if metadata is not None and metadata.ecs_metadata is None:
        add_ecs_metadata(metadata)