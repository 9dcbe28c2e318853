import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest import mock

import pytest

from xraykit import aws_plugins, plugins
from xraykit.plugins import (
    BeanstalkMetadata,
    EC2Metadata,
    ECSMetadata,
    PluginMetadata,
)

TEST_METADATA = """{
  "accountId" : "000000000000",
  "architecture" : "x86_64",
  "availabilityZone" : "us-west-2a",
  "billingProducts" : null,
  "devpayProductCodes" : null,
  "marketplaceProductCodes" : null,
  "imageId" : "ami-00000000000000000",
  "instanceId" : "i-0123456789abcdef0",
  "instanceType" : "c5.xlarge",
  "kernelId" : null,
  "pendingTime" : "2020-04-21T21:16:47Z",
  "privateIp" : "172.19.57.109",
  "ramdiskId" : null,
  "region" : "us-west-2",
  "version" : "2017-09-30"
}"""

DOCUMENT_PATH = "/dynamic/instance-identity/document"
TOKEN_PATH = "/api/token"


class _Server:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        outer = self

        class Handler(BaseHTTPRequestHandler):
            def _handle(self):
                outer.requests.append((self.command, self.path, dict(self.headers)))
                status, body = outer.routes.get(
                    (self.command, self.path), (404, b"not found")
                )
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            do_GET = _handle
            do_PUT = _handle

            def log_message(self, *args):
                pass

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        self.thread.start()

    @property
    def url(self):
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}/"

    def close(self):
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def make_server():
    servers = []

    def factory(routes):
        server = _Server(routes)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.close()


def _header(headers, name):
    return next((v for k, v in headers.items() if k.lower() == name.lower()), None)


def test_imds_v2_success(make_server):
    token_server = make_server({("PUT", TOKEN_PATH): (200, b"token")})
    metadata_server = make_server({("GET", DOCUMENT_PATH): (200, TEST_METADATA.encode())})

    token = aws_plugins.get_token(token_server.url, 5)
    assert token == "token"
    method, path, headers = token_server.requests[0]
    assert (method, path) == ("PUT", TOKEN_PATH)
    assert _header(headers, "X-aws-ec2-metadata-token-ttl-seconds") == "60"

    body = aws_plugins.get_metadata(metadata_server.url, token, 5)
    assert body == TEST_METADATA.encode()
    _, path, headers = metadata_server.requests[0]
    assert path == DOCUMENT_PATH
    assert _header(headers, "X-aws-ec2-metadata-token") == "token"


def test_imds_v2_fail_v1_success(make_server):
    metadata_server = make_server({("GET", DOCUMENT_PATH): (200, TEST_METADATA.encode())})

    with pytest.raises(ValueError):
        aws_plugins.get_token("/", 5)

    body = aws_plugins.get_metadata(metadata_server.url, "", 5)
    assert body == TEST_METADATA.encode()
    _, path, headers = metadata_server.requests[0]
    assert path == DOCUMENT_PATH
    assert _header(headers, "X-aws-ec2-metadata-token") is None


def test_imds_v2_fail_v1_fail():
    with pytest.raises(ValueError):
        aws_plugins.get_token("/", 5)
    with pytest.raises(ValueError):
        aws_plugins.get_metadata("/", "", 5)


def test_add_ec2_metadata_success(make_server):
    server = make_server(
        {
            ("PUT", TOKEN_PATH): (200, b"token"),
            ("GET", DOCUMENT_PATH): (200, TEST_METADATA.encode()),
        }
    )
    metadata = PluginMetadata()
    aws_plugins.add_ec2_metadata(metadata, server.url)

    assert metadata.ec2_metadata == EC2Metadata(
        instance_id="i-0123456789abcdef0", availability_zone="us-west-2a"
    )
    assert metadata.origin == "AWS::EC2::Instance"


def test_add_ec2_metadata_invalid_json_leaves_metadata(make_server):
    server = make_server(
        {
            ("PUT", TOKEN_PATH): (200, b"token"),
            ("GET", DOCUMENT_PATH): (200, b"not json"),
        }
    )
    metadata = PluginMetadata()
    aws_plugins.add_ec2_metadata(metadata, server.url)

    assert metadata.ec2_metadata is None
    assert metadata.origin == ""


def test_add_ec2_metadata_unreachable_leaves_metadata():
    metadata = PluginMetadata()
    aws_plugins.add_ec2_metadata(metadata, "/")
    assert metadata.ec2_metadata is None
    assert metadata.origin == ""


def test_add_beanstalk_metadata(tmp_path):
    config = tmp_path / "environment.conf"
    config.write_text(
        json.dumps(
            {
                "deployment_id": 3,
                "version_label": "v1",
                "environment_name": "production",
            }
        )
    )
    metadata = PluginMetadata()
    aws_plugins.add_beanstalk_metadata(metadata, config)

    assert metadata.beanstalk_metadata == BeanstalkMetadata(
        environment="production", version_label="v1", deployment_id=3
    )
    assert metadata.origin == "AWS::ElasticBeanstalk::Environment"


def test_add_beanstalk_metadata_missing_file(tmp_path):
    metadata = PluginMetadata()
    aws_plugins.add_beanstalk_metadata(metadata, tmp_path / "missing.conf")
    assert metadata.beanstalk_metadata is None
    assert metadata.origin == ""


def test_add_beanstalk_metadata_invalid_json(tmp_path):
    config = tmp_path / "environment.conf"
    config.write_text("{not json")
    metadata = PluginMetadata()
    aws_plugins.add_beanstalk_metadata(metadata, config)
    assert metadata.beanstalk_metadata is None
    assert metadata.origin == ""


def test_add_beanstalk_metadata_wrong_type(tmp_path):
    config = tmp_path / "environment.conf"
    config.write_text(json.dumps({"deployment_id": "three"}))
    metadata = PluginMetadata()
    aws_plugins.add_beanstalk_metadata(metadata, config)
    assert metadata.beanstalk_metadata is None


def test_add_ecs_metadata():
    metadata = PluginMetadata()
    with mock.patch("socket.gethostname", return_value="container-host"):
        aws_plugins.add_ecs_metadata(metadata)
    assert metadata.ecs_metadata == ECSMetadata(container_name="container-host")
    assert metadata.origin == "AWS::ECS::Container"


def test_add_ecs_metadata_hostname_failure():
    metadata = PluginMetadata()
    with mock.patch("socket.gethostname", side_effect=OSError("boom")):
        aws_plugins.add_ecs_metadata(metadata)
    assert metadata.ecs_metadata is None
    assert metadata.origin == ""


def test_init_ecs_sets_shared_metadata(monkeypatch):
    shared = PluginMetadata()
    monkeypatch.setattr(plugins, "INSTANCE_PLUGIN_METADATA", shared)
    with mock.patch("socket.gethostname", return_value="node"):
        aws_plugins.init_ecs()
    assert shared.ecs_metadata == ECSMetadata(container_name="node")


def test_init_ecs_keeps_existing(monkeypatch):
    existing = ECSMetadata(container_name="first")
    shared = PluginMetadata(ecs_metadata=existing, origin="kept")
    monkeypatch.setattr(plugins, "INSTANCE_PLUGIN_METADATA", shared)
    with mock.patch("socket.gethostname", return_value="second"):
        aws_plugins.init_ecs()
    assert shared.ecs_metadata.container_name == "first"
    assert shared.origin == "kept"


def test_init_ec2_keeps_existing(monkeypatch):
    existing = EC2Metadata(instance_id="i-0000", availability_zone="zone-a")
    shared = PluginMetadata(ec2_metadata=existing, origin="kept")
    monkeypatch.setattr(plugins, "INSTANCE_PLUGIN_METADATA", shared)
    aws_plugins.init_ec2()
    assert shared.ec2_metadata.instance_id == "i-0000"
    assert shared.origin == "kept"


def test_init_beanstalk_keeps_existing(monkeypatch):
    existing = BeanstalkMetadata(environment="env")
    shared = PluginMetadata(beanstalk_metadata=existing, origin="kept")
    monkeypatch.setattr(plugins, "INSTANCE_PLUGIN_METADATA", shared)
    aws_plugins.init_beanstalk()
    assert shared.beanstalk_metadata.environment == "env"
    assert shared.origin == "kept"