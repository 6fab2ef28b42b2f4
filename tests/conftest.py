"""
Shared fixtures: a fake MySquadStats service behind httpx.MockTransport.
"""

import json
import os

# Keep test runs from writing log files or needing a real token
os.environ['LOG_DIR'] = ''
os.environ.setdefault('MSS_ACCESS_TOKEN', 'test-token')

import httpx
import pytest
import pytest_asyncio

from squad_stats.api.transport import StatsApiClient

API_BASE = 'https://stats.test/api'


class FakeStatsService:
    """Programmable stand-in for the statistics API.
    
    Every request is recorded as (method, resource, json_body, query).
    Responses default to 200 with a Success envelope; override per
    (method, resource) with `statuses` / `bodies`, or globally with `status`.
    """
    
    def __init__(self):
        self.calls = []
        self.status = 200
        self.statuses = {}
        self.bodies = {}
        self.ping_message = 'pong'
        self.offline = False
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        resource = request.url.path.rsplit('/', 1)[-1]
        payload = json.loads(request.content) if request.content else None
        self.calls.append((request.method, resource, payload, dict(request.url.params)))
        
        if self.offline:
            raise httpx.ConnectError("network unreachable", request=request)
        
        if request.method == 'GET' and resource == 'ping':
            return httpx.Response(200, json={'successStatus': 'Success', 'successMessage': self.ping_message})
        
        status = self.statuses.get((request.method, resource), self.status)
        body = self.bodies.get(
            (request.method, resource),
            {'successStatus': 'Success', 'successMessage': 'ok'},
        )
        return httpx.Response(status, json=body)
    
    def writes(self, resource=None):
        """Recorded POST/PATCH calls other than health pings, as (method, resource, payload)"""
        return [
            (method, res, payload)
            for method, res, payload, _ in self.calls
            if method in ('POST', 'PATCH') and res != 'ping'
            and (resource is None or res == resource)
        ]



class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""
    
    def __init__(self):
        self.now = 100.0
        self.sleeps = []
    
    def __call__(self):
        return self.now
    
    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stats_service():
    return FakeStatsService()


@pytest_asyncio.fixture
async def api(stats_service):
    client = StatsApiClient(
        access_token='test-token',
        base_url=API_BASE,
        recoverable_status_codes={502},
        transport=httpx.MockTransport(stats_service),
    )
    yield client
    await client.close()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / 'MySquadStats_Data'
    path.mkdir()
    return path
