"""
SMART on FHIR Authorization

Supports the two SMART App Launch flows:
- EHR launch: the EHR opens the app with `iss` and `launch` query params
- Standalone launch: the app starts on its own against a known server

Both flows build an authorization URL for the user-agent to visit; once the
authorization server redirects back with `code` and `state`,
`complete_authorization()` exchanges the code for an access token.

Authorized sessions live in memory only.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import httpx

from ltc888.config import settings
from ltc888.utils import AuthorizationError, get_logger

logger = get_logger(__name__)

EHR_LAUNCH = "ehr"
STANDALONE_LAUNCH = "standalone"


@dataclass
class SmartConfiguration:
    """Endpoints published at `{iss}/.well-known/smart-configuration`."""
    authorization_endpoint: str
    token_endpoint: str
    capabilities: list = field(default_factory=list)


@dataclass
class LaunchRequest:
    """Where to send the user-agent, and the state to expect back."""
    launch_type: str
    authorize_url: str
    state: str
    iss: str
    redirect_uri: str
    client_id: str
    scope: str
    token_endpoint: str


@dataclass
class FHIRSession:
    """An authorized connection to a FHIR server."""
    server_url: str
    access_token: str
    token_type: str = "Bearer"
    scope: Optional[str] = None
    patient_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class FHIRAuth:
    """
    SMART on FHIR authorization helper.

    Example:
        auth = FHIRAuth("https://emr-smart.appx.com.tw/v/r4/fhir")
        launch = await auth.standalone_launch(redirect_uri="https://app/callback")
        # ... redirect the browser to launch.authorize_url ...
        session = await auth.complete_authorization(code, state)
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.server_url = (server_url or settings.fhir_server_url).rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
        self._pending: Dict[str, LaunchRequest] = {}
        self._session: Optional[FHIRSession] = None

    # ── Discovery ────────────────────────────────────────────────────────

    async def discover(self, iss: Optional[str] = None) -> SmartConfiguration:
        """Fetch the SMART configuration document for `iss` (default: this server)."""
        iss = (iss or self.server_url).rstrip("/")
        try:
            response = await self._http.get(
                f"{iss}/.well-known/smart-configuration",
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as exc:
            raise AuthorizationError(
                f"SMART configuration discovery failed for {iss}: {exc}",
                details={"iss": iss},
            ) from exc

        try:
            return SmartConfiguration(
                authorization_endpoint=document["authorization_endpoint"],
                token_endpoint=document["token_endpoint"],
                capabilities=document.get("capabilities", []),
            )
        except KeyError as exc:
            raise AuthorizationError(
                f"SMART configuration for {iss} is missing {exc.args[0]}",
                details={"iss": iss},
            ) from exc

    # ── Launch flows ─────────────────────────────────────────────────────

    async def ehr_launch(
        self,
        iss: str,
        launch: str,
        redirect_uri: Optional[str] = None,
        client_id: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> LaunchRequest:
        """Begin an EHR launch using the `iss` / `launch` params the EHR supplied."""
        return await self._begin(EHR_LAUNCH, iss, redirect_uri, client_id, scope, launch=launch)

    async def standalone_launch(
        self,
        redirect_uri: Optional[str] = None,
        client_id: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> LaunchRequest:
        """Begin a standalone launch against this client's FHIR server."""
        return await self._begin(STANDALONE_LAUNCH, self.server_url, redirect_uri, client_id, scope)

    async def auto_launch(self, query_params: Mapping[str, Any], **options: Any) -> LaunchRequest:
        """EHR launch when both `iss` and `launch` are present, otherwise standalone."""
        iss = query_params.get("iss")
        launch = query_params.get("launch")
        if iss and launch:
            return await self.ehr_launch(iss, launch, **options)
        return await self.standalone_launch(**options)

    async def _begin(
        self,
        launch_type: str,
        iss: str,
        redirect_uri: Optional[str],
        client_id: Optional[str],
        scope: Optional[str],
        launch: Optional[str] = None,
    ) -> LaunchRequest:
        if not redirect_uri:
            raise AuthorizationError("redirect_uri is required", launch_type=launch_type)

        config = await self.discover(iss)
        client_id = client_id or settings.client_id
        scope = scope or settings.scope
        state = secrets.token_urlsafe(16)

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "state": state,
            "aud": iss,
        }
        if launch:
            params["launch"] = launch

        request = LaunchRequest(
            launch_type=launch_type,
            authorize_url=str(httpx.URL(config.authorization_endpoint, params=params)),
            state=state,
            iss=iss.rstrip("/"),
            redirect_uri=redirect_uri,
            client_id=client_id,
            scope=scope,
            token_endpoint=config.token_endpoint,
        )
        self._pending[state] = request
        logger.info(f"FHIRAuth: {launch_type} launch started for {request.iss}")
        return request

    # ── Token exchange ───────────────────────────────────────────────────

    async def complete_authorization(self, code: str, state: str) -> FHIRSession:
        """Exchange the authorization `code` for a token; `state` must match a pending launch."""
        request = self._pending.pop(state, None)
        if request is None:
            raise AuthorizationError("Unknown or already used authorization state")

        try:
            response = await self._http.post(
                request.token_endpoint,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": request.redirect_uri,
                    "client_id": request.client_id,
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token = response.json()
        except httpx.HTTPError as exc:
            raise AuthorizationError(
                f"Token exchange failed: {exc}",
                launch_type=request.launch_type,
            ) from exc

        access_token = token.get("access_token")
        if not access_token:
            raise AuthorizationError("No access token in response", launch_type=request.launch_type)

        expires_at = None
        if token.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(token["expires_in"]))

        self._session = FHIRSession(
            server_url=request.iss,
            access_token=access_token,
            token_type=token.get("token_type", "Bearer"),
            scope=token.get("scope", request.scope),
            patient_id=token.get("patient"),
            expires_at=expires_at,
            refresh_token=token.get("refresh_token"),
            id_token=token.get("id_token"),
        )
        logger.info(f"FHIRAuth: {request.launch_type} launch authorized")
        return self._session

    # ── Session ──────────────────────────────────────────────────────────

    def ready(self) -> Optional[FHIRSession]:
        """The current authorized session, or None if there is none (or it expired)."""
        if self._session is None:
            return None
        if self._session.is_expired():
            logger.warning("FHIRAuth: stored session has expired")
            return None
        return self._session

    @property
    def session(self) -> Optional[FHIRSession]:
        return self._session

    async def logout(self) -> None:
        self._session = None
        self._pending.clear()

    async def aclose(self) -> None:
        await self._http.aclose()
