"""
Transport for the MySquadStats API.

Every call goes through one httpx.AsyncClient and comes back as an ApiResult
instead of an exception. The outcome classification below is the single
place that decides whether a failed write is worth persisting for retry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import httpx

from squad_stats.config import Config
from squad_stats.constants import ApiConstants
from squad_stats.models.requests import OperationKind
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class Outcome(Enum):
    SUCCESS = "success"
    RECOVERABLE = "recoverable"    # upstream explicitly unavailable, queue it
    FATAL = "fatal"                # bad request or unexpected status, drop it
    CONNECTIVITY = "connectivity"  # no response at all, drop it


@dataclass
class ApiResult:
    """Classified result of one API call, carrying the response envelope."""
    outcome: Outcome
    body: Dict[str, Any] = field(default_factory=dict)
    status_code: Optional[int] = None
    queued: bool = False
    
    @property
    def success_status(self) -> str:
        return str(self.body.get('successStatus', ''))
    
    @property
    def message(self) -> str:
        return str(self.body.get('successMessage', ''))
    
    @property
    def delivered(self) -> bool:
        """The service received and answered the call"""
        return self.outcome is Outcome.SUCCESS
    
    @property
    def ok(self) -> bool:
        """Delivered and not rejected in the response envelope"""
        return self.delivered and self.success_status != ApiConstants.STATUS_ERROR
    
    @property
    def is_fatal(self) -> bool:
        return self.outcome in (Outcome.FATAL, Outcome.CONNECTIVITY)
    
    def summary(self) -> str:
        return f"{self.success_status or 'Error'} | {self.message}"


def classify_status(status_code: int, recoverable_codes: Iterable[int]) -> Outcome:
    """Map an HTTP status code to a call outcome"""
    if 200 <= status_code < 300:
        return Outcome.SUCCESS
    if status_code in set(recoverable_codes):
        return Outcome.RECOVERABLE
    return Outcome.FATAL


def _error_envelope(message: str) -> Dict[str, Any]:
    return {'successStatus': ApiConstants.STATUS_ERROR, 'successMessage': message}


def _status_message(response: httpx.Response, outcome: Outcome) -> str:
    message = f"{response.status_code} - {response.reason_phrase}"
    if outcome is Outcome.RECOVERABLE:
        message += " Unable to connect to the API. My Squad Stats is likely down."
    elif response.status_code == 500:
        message += " Internal server error. Something went wrong on the server."
    return message


class StatsApiClient:
    """Async client for the statistics API resources.
    
    Args:
        access_token: Token sent as the accessToken query parameter
        base_url: API root, resources are appended as path segments
        recoverable_status_codes: Statuses classified as RECOVERABLE
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """
    
    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        recoverable_status_codes: Optional[Iterable[int]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token if access_token is not None else Config.ACCESS_TOKEN
        self.base_url = (base_url or Config.API_BASE_URL).rstrip('/')
        self.recoverable_status_codes = set(
            recoverable_status_codes if recoverable_status_codes is not None
            else Config.get_recoverable_status_codes()
        )
        self._client = httpx.AsyncClient(transport=transport)
    
    async def close(self):
        await self._client.aclose()
    
    async def __aenter__(self) -> 'StatsApiClient':
        return self
    
    async def __aexit__(self, *_: object) -> None:
        await self.close()
    
    async def create(self, resource: str, payload: Dict[str, Any]) -> ApiResult:
        return await self._request("POST", resource, json=payload)
    
    async def update(self, resource: str, payload: Dict[str, Any]) -> ApiResult:
        return await self._request("PATCH", resource, json=payload)
    
    async def read(self, resource: str, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return await self._request("GET", resource, params=params)
    
    async def send(self, kind: OperationKind, resource: str, payload: Dict[str, Any]) -> ApiResult:
        """Dispatch a write by operation kind"""
        if kind is OperationKind.CREATE:
            return await self.create(resource, payload)
        return await self.update(resource, payload)
    
    async def ping(self) -> bool:
        """Health check, True only when the service answers with a pong"""
        result = await self.read(ApiConstants.PING_RESOURCE)
        return result.delivered and result.message == ApiConstants.PONG_MESSAGE
    
    async def _request(
        self,
        method: str,
        resource: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResult:
        url = f"{self.base_url}/{resource}"
        query = dict(params or {})
        query['accessToken'] = self.access_token or ''
        
        try:
            response = await self._client.request(method, url, json=json, params=query)
        except httpx.RequestError as e:
            logger.debug(f"{method} {resource} failed without a response: {e!r}")
            return ApiResult(
                outcome=Outcome.CONNECTIVITY,
                body=_error_envelope(
                    "No response received from the API. Please check your network connection."
                ),
            )
        except httpx.InvalidURL as e:
            logger.error(f"{method} {resource} has an invalid URL {url!r}: {e}")
            return ApiResult(
                outcome=Outcome.FATAL,
                body=_error_envelope(f"Invalid API URL, check MSS_API_BASE_URL: {e}"),
            )
        
        outcome = classify_status(response.status_code, self.recoverable_status_codes)
        if outcome is not Outcome.SUCCESS:
            return ApiResult(
                outcome=outcome,
                body=_error_envelope(_status_message(response, outcome)),
                status_code=response.status_code,
            )
        
        try:
            body = response.json()
        except ValueError:
            logger.debug(f"{method} {resource} returned a non-JSON body")
            body = {}
        
        return ApiResult(
            outcome=Outcome.SUCCESS,
            body=body if isinstance(body, dict) else {'data': body},
            status_code=response.status_code,
        )
