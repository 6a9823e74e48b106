"""Shared fixtures for hdfsdrop tests."""

import httpx
import pytest

from hdfsdrop.config import build_config
from hdfsdrop.integrations.webhdfs import WebHdfsClient

NAMENODE = "http://namenode:9870/webhdfs/v1"
DATANODE_LOCATION = "http://datanode:9864/webhdfs/v1/data/inbox/file?op=CREATE&namenoderpcaddress=nn:8020"


class FakeGateway:
    """``httpx.MockTransport`` handler playing namenode and datanode.

    Requests to the namenode host answer ``create_status`` (with
    ``location`` as the Location header when not None); requests to any
    other host answer ``write_status``. ``create_overrides`` maps a file
    name suffix of the create path to a different create status.
    """

    def __init__(
        self,
        *,
        create_status: int = 307,
        location: str | None = DATANODE_LOCATION,
        write_status: int = 201,
        create_overrides: dict[str, int] | None = None,
    ) -> None:
        self.create_status = create_status
        self.location = location
        self.write_status = write_status
        self.create_overrides = create_overrides or {}
        self.requests: list[httpx.Request] = []

    @property
    def create_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "namenode"]

    @property
    def write_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host != "namenode"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host != "namenode":
            return httpx.Response(self.write_status)

        status = self.create_status
        for suffix, override in self.create_overrides.items():
            if request.url.path.endswith(suffix):
                status = override
        headers = {}
        if self.location is not None:
            headers["Location"] = self.location
        return httpx.Response(status, headers=headers)


@pytest.fixture(autouse=True)
def _no_sops(monkeypatch):
    """Ensure tests never try to invoke SOPS."""
    monkeypatch.setenv("HDFSDROP_USE_SOPS", "false")
    monkeypatch.delenv("HDFSDROP_CONFIG", raising=False)


@pytest.fixture()
def ingest_config(tmp_path):
    """A config rooted in tmp_path with the four working directories created."""
    config = build_config(
        remote_base_url=NAMENODE,
        remote_dir="/data/inbox",
        base_dir=tmp_path / "work",
        hdfs_user="etl",
        internal_key="Bearer secret-token",
    )
    for d in (config.pending_dir, config.success_dir, config.error_dir, config.log_dir):
        d.mkdir(parents=True)
    return config


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
async def client(ingest_config, gateway):
    async with WebHdfsClient(ingest_config, transport=httpx.MockTransport(gateway)) as c:
        yield c
