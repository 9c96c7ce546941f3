import aiohttp
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from basespace.domain.exceptions import DecodingError, TransportError
from basespace.domain.result import Failure, Result, Success
from basespace.infrastructure.acl import extract, wire_path

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_URL_V1 = "https://api.basespace.illumina.com/v1pre3"
BASE_URL_V2 = "https://api.basespace.illumina.com/v2"
AUTHORIZE_URL = "https://basespace.illumina.com/oauth/authorize"

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)
# Statuses BaseSpace answers with when the access token is expired or revoked
UNAUTHORIZED_STATUSES = {401, 403}


class ApiVersion(Enum):
    V1 = "v1"
    V2 = "v2"


class ApiRequest(BaseModel):
    """Fully qualified request: absolute URL plus query parameters."""
    model_config = ConfigDict(frozen=True)

    url: str
    params: Dict[str, str] = Field(default_factory=dict)

    def with_params(self, **extra: Any) -> "ApiRequest":
        params = dict(self.params)
        params.update({key: str(value) for key, value in extra.items()})
        return self.model_copy(update={"params": params})


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    stage: str,
    **kwargs: Any,
) -> Result[Any]:
    """
    Performs one HTTP request and returns its JSON body.

    Non-2xx statuses, connection errors and timeouts become a TransportError,
    a body that is not JSON becomes a DecodingError. Nothing is retried.
    """
    try:
        async with session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)
    except aiohttp.ClientResponseError as e:
        logger.warning(f"{method} {url} answered HTTP {e.status} during {stage}.")
        return Failure(TransportError(stage, url, status=e.status, cause=e))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"{method} {url} failed during {stage}: {e!r}")
        return Failure(TransportError(stage, url, cause=e))
    except ValueError as e:
        return Failure(DecodingError("", f"response body is not JSON ({e})", stage=stage))

    return Success(data)


class BaseSpaceClient:
    """
    Client for the BaseSpace REST API.
    Builds authenticated requests against both API versions and decodes single resources.
    """

    def __init__(self, token: str, base_url_v1: str = BASE_URL_V1, base_url_v2: str = BASE_URL_V2):
        self.token = token
        self.base_urls = {
            ApiVersion.V1: base_url_v1.rstrip("/"),
            ApiVersion.V2: base_url_v2.rstrip("/"),
        }

    def query(self, api: ApiVersion, path: str, params: Optional[Dict[str, Any]] = None) -> ApiRequest:
        """
        Builds the request for ``path`` under the ``api`` root, carrying the access token.

        Args:
            api (ApiVersion): Which API root to prefix the path with.
            path (str): Resource path, as documented in the BaseSpace API reference.
            params (Optional[Dict[str, Any]]): Extra query parameters.
        """
        request = ApiRequest(
            url=f"{self.base_urls[api]}/{path}",
            params={"access_token": self.token},
        )
        return request.with_params(**params) if params else request

    async def get_json(
        self,
        session: aiohttp.ClientSession,
        request: ApiRequest,
        stage: str = "request",
    ) -> Result[Any]:
        return await request_json(session, "GET", request.url, stage, params=request.params)

    async def fetch_entity(
        self,
        session: aiohttp.ClientSession,
        request: ApiRequest,
        decode: Callable[[Any], T],
        root: Sequence[str] = (),
        stage: str = "request",
    ) -> Result[T]:
        """
        Fetches a single resource and decodes the object found at ``root``.

        v1 wraps single resources in a ``Response`` object, v2 returns them bare.
        """
        response = await self.get_json(session, request, stage)
        if isinstance(response, Failure):
            return response

        try:
            raw_node = extract(response.value, root)
        except DecodingError as e:
            return Failure(e.during(stage))

        try:
            return Success(decode(raw_node))
        except DecodingError as e:
            error = e.nested(wire_path(root)) if root else e
            return Failure(error.during(stage))

    async def is_token_valid(self, session: aiohttp.ClientSession) -> Result[bool]:
        """
        Probes the API with the current user's record.

        Returns Success(False) when the token is rejected; any other failure is
        returned unchanged.
        """
        result = await self.get_json(session, self.query(ApiVersion.V1, "users/current"), "token check")
        if isinstance(result, Success):
            return Success(True)

        error = result.error
        if isinstance(error, TransportError) and error.status in UNAUTHORIZED_STATUSES:
            logger.info("The access token was rejected by BaseSpace.")
            return Success(False)
        return result


class BaseSpaceAuth:
    """
    Exchanges OAuth2 authorization codes for BaseSpace access tokens.
    """

    def __init__(self, client_id: str, client_secret: str, base_url_v1: str = BASE_URL_V1):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = f"{base_url_v1.rstrip('/')}/oauthv2/token"

    def access_url(self, redirect: str, scope: str) -> str:
        """
        Builds the URL that starts the BaseSpace authorization process.

        Args:
            redirect (str): Where the user is sent when the authorization finishes.
            scope (str): The permissions requested, e.g. ``"browse global"``.
        """
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect,
            "response_type": "code",
            "scope": scope,
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def authenticate(self, session: aiohttp.ClientSession, redirect: str, code: str) -> Result[str]:
        """
        Exchanges the authorization ``code`` received after visiting ``access_url``
        for an access token.
        """
        stage = "token exchange"
        response = await request_json(
            session,
            "POST",
            self.token_url,
            stage,
            params={
                "code": code,
                "redirect_uri": redirect,
                "grant_type": "authorization_code",
            },
            auth=aiohttp.BasicAuth(self.client_id, self.client_secret),
        )
        if isinstance(response, Failure):
            return response

        payload = response.value
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str):
            return Failure(DecodingError("access_token", "missing or not a string", stage=stage))
        return Success(token)
