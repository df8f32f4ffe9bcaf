"""initflow backend API client."""

from __future__ import annotations

from typing import Any

from ..crypto.utils import from_base64, to_base64
from ..errors import ApiError, MalformedEnvelopeError, WorkspaceNotFoundError
from ..types import LoginResponse, User, Workspace
from .base_client import BaseApiClient, encode_path_segment


def _parse_workspace(data: dict[str, Any]) -> Workspace:
    return Workspace(
        id=str(data["id"]),
        name=data.get("name", ""),
        slug=data["slug"],
        key_initialized=bool(data.get("key_initialized", False)),
        role=data.get("role", ""),
    )


class ApiClient(BaseApiClient):
    """HTTP client for the initflow API.

    Treats wrapped workspace keys as opaque bytes; they are sent and received
    base64-encoded in JSON bodies.
    """

    # Auth endpoints

    async def login(self, email: str, password: str) -> LoginResponse:
        """Authenticate with email and password.

        The returned token is also installed on this client.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            LoginResponse with the registration token and user details.
        """
        response = await self._request(
            "POST", "/api/v1/auth/login", json={"email": email, "password": password}
        )
        data = response.json()
        user = data.get("user", {})
        login = LoginResponse(
            token=data["token"],
            user=User(
                id=str(user.get("id", "")),
                email=user.get("email", email),
                name=user.get("name", ""),
                surname=user.get("surname", ""),
            ),
        )
        self.set_token(login.token)
        return login

    # Workspace endpoints

    async def list_workspaces(self) -> list[Workspace]:
        """List all workspaces visible to the current user.

        Returns:
            Workspaces with their key initialization status.
        """
        response = await self._request("GET", "/api/v1/workspaces")
        data = response.json()
        items = data.get("workspaces", []) if isinstance(data, dict) else data
        return [_parse_workspace(item) for item in items]

    async def get_workspace_by_slug(self, slug: str) -> Workspace:
        """Get a single workspace.

        Args:
            slug: The workspace slug.

        Returns:
            The workspace.

        Raises:
            WorkspaceNotFoundError: If no workspace has this slug.
        """
        encoded = encode_path_segment(slug)
        try:
            response = await self._request("GET", f"/api/v1/workspaces/{encoded}")
        except WorkspaceNotFoundError:
            raise
        except ApiError as e:
            if e.status_code == 404:
                raise WorkspaceNotFoundError(f"Workspace {slug!r} not found") from e
            raise
        data = response.json()
        return _parse_workspace(data.get("workspace", data))

    async def initialize_workspace_key(self, workspace_id: str, wrapped_key: bytes) -> None:
        """Upload the wrapped workspace key.

        The backend accepts exactly one initial key per workspace and answers
        409 Conflict to every later attempt.

        Args:
            workspace_id: The workspace ID.
            wrapped_key: Envelope bytes in wire format.
        """
        encoded = encode_path_segment(workspace_id)
        await self._request(
            "POST",
            f"/api/v1/workspaces/{encoded}/key",
            json={"wrapped_key": to_base64(wrapped_key)},
        )

    async def get_wrapped_workspace_key(self, workspace_id: str) -> bytes:
        """Fetch the wrapped workspace key addressed to this device.

        Args:
            workspace_id: The workspace ID.

        Returns:
            Envelope bytes in wire format.

        Raises:
            ApiError: If the response carries no wrapped key.
            MalformedEnvelopeError: If the wrapped key is not valid base64.
        """
        encoded = encode_path_segment(workspace_id)
        response = await self._request("GET", f"/api/v1/workspaces/{encoded}/key")
        try:
            wrapped_key = response.json()["wrapped_key"]
        except (ValueError, KeyError, TypeError) as e:
            raise ApiError(response.status_code, "Response has no wrapped_key") from e
        try:
            return from_base64(wrapped_key)
        except (ValueError, TypeError) as e:
            raise MalformedEnvelopeError(f"Wrapped key is not valid base64: {e}") from e
