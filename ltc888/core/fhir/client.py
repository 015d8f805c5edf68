"""
LTC888 Client

Async wrapper around a FHIR R4 REST endpoint for reading and writing
long-term-care records (Patient, Observation, CarePlan, Goal, ...).
Search operations return the raw searchset Bundle.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ltc888.config import settings
from ltc888.utils import AuthorizationError, FHIRClientError, get_logger
from .auth import FHIRAuth, FHIRSession

logger = get_logger(__name__)

FHIR_JSON = "application/fhir+json"


class LTC888Client:
    """
    Client for a SMART-authorized FHIR server.

    Example:
        client = LTC888Client()
        await client.initialize(access_token="...", patient_id="123")
        bundle = await client.get_observation(search_params={"code": "85354-9"})
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        auth_options: Optional[Dict[str, Any]] = None,
        auth: Optional[FHIRAuth] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.server_url = (server_url or settings.fhir_server_url).rstrip("/")
        self.auth = auth or FHIRAuth(self.server_url)
        self.auth_options = auth_options or {}
        self.session: Optional[FHIRSession] = None
        self._http = http_client
        self._owns_http = http_client is None
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(
        self,
        access_token: Optional[str] = None,
        patient_id: Optional[str] = None,
        **options: Any,
    ) -> "LTC888Client":
        """
        Attach an authorized session.

        Uses `access_token` when given, else the auth helper's ready session,
        else completes a pending launch if `code` and `state` are supplied.

        Raises:
            AuthorizationError: if no authorized session can be obtained.
        """
        merged = {**self.auth_options, **options}

        if access_token:
            session = FHIRSession(server_url=self.server_url, access_token=access_token, patient_id=patient_id)
        else:
            session = self.auth.ready()
            if session is None and merged.get("code") and merged.get("state"):
                session = await self.auth.complete_authorization(merged["code"], merged["state"])
            if session is None:
                raise AuthorizationError(
                    "No authorized session; complete a SMART launch or pass an access token"
                )
            if patient_id:
                session.patient_id = patient_id

        self.session = session
        headers = {
            "Accept": FHIR_JSON,
            "Content-Type": FHIR_JSON,
            "Authorization": session.authorization_header,
        }
        if self._http is not None:
            self._http.headers.update(headers)
            self._client = self._http
        else:
            self._client = httpx.AsyncClient(
                base_url=f"{session.server_url.rstrip('/')}/",
                headers=headers,
                timeout=settings.request_timeout_seconds,
            )
        logger.info(f"LTC888Client initialized for {session.server_url}")
        return self

    def get_client(self) -> httpx.AsyncClient:
        """
        Raises:
            FHIRClientError: if initialize() has not been called.
        """
        if self._client is None:
            raise FHIRClientError("Client is not initialized; call initialize() first")
        return self._client

    # ── Transport ────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        resource_type: str,
        operation: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        client = self.get_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(f"Failed to {operation} {resource_type}: {exc}")
            raise FHIRClientError(
                f"Failed to {operation} {resource_type}: {exc}",
                resource_type=resource_type,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(f"Failed to {operation} {resource_type}: {exc}")
            raise FHIRClientError(
                f"Failed to {operation} {resource_type}: {exc}",
                resource_type=resource_type,
            ) from exc

    # ── Patient ──────────────────────────────────────────────────────────

    async def get_patient_info(self) -> Dict[str, Any]:
        """Read the Patient in the current launch context."""
        self.get_client()
        patient_id = self.session.patient_id if self.session else None
        if not patient_id:
            raise FHIRClientError("No patient in the current launch context", resource_type="Patient")
        return await self.read_resource("Patient", patient_id)

    async def get_patient_id(self) -> str:
        patient = await self.get_patient_info()
        return patient["id"]

    async def _read_for_patient(
        self,
        resource_type: str,
        resource_id: Optional[str],
        search_params: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if resource_id:
            return await self.read_resource(resource_type, resource_id)
        patient_id = await self.get_patient_id()
        params = {"subject": f"Patient/{patient_id}", **(search_params or {})}
        return await self.read_resource(resource_type, search_params=params)

    # ── Observation / CarePlan / Goal ────────────────────────────────────

    async def get_observation(
        self,
        observation_id: Optional[str] = None,
        search_params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """One Observation by id, or a search scoped to the current patient."""
        return await self._read_for_patient("Observation", observation_id, search_params)

    async def create_observation(self, observation: Dict[str, Any]) -> Dict[str, Any]:
        return await self.create_resource(observation)

    async def update_observation(self, observation: Dict[str, Any]) -> Dict[str, Any]:
        return await self.update_resource(observation)

    async def get_care_plan(
        self,
        care_plan_id: Optional[str] = None,
        search_params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._read_for_patient("CarePlan", care_plan_id, search_params)

    async def get_goal(
        self,
        goal_id: Optional[str] = None,
        search_params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._read_for_patient("Goal", goal_id, search_params)

    # ── Generic resources ────────────────────────────────────────────────

    async def read_resource(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        search_params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if resource_id:
            return await self._request("GET", f"{resource_type}/{resource_id}", resource_type, "read")
        return await self._request("GET", resource_type, resource_type, "search", params=search_params or {})

    async def create_resource(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        """POST the resource; returns the persisted form including its id."""
        resource_type = resource.get("resourceType", "unknown")
        return await self._request("POST", resource_type, resource_type, "create", json=resource)

    async def update_resource(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        """
        Raises:
            FHIRClientError: if the resource has no id.
        """
        resource_type = resource.get("resourceType", "unknown")
        if not resource.get("id"):
            raise FHIRClientError(f"Updating {resource_type} requires an id", resource_type=resource_type)
        return await self._request(
            "PUT", f"{resource_type}/{resource['id']}", resource_type, "update", json=resource
        )

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def logout(self) -> None:
        await self.auth.logout()
        await self.close()
        self.session = None

    async def close(self) -> None:
        if self._client is not None and self._owns_http:
            await self._client.aclose()
        self._client = None
