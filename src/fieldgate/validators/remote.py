"""Remote (HTTP-backed) validators.

A remote validator sends the entity value to an endpoint and turns the
response into a verdict:

- request: GET with the payload as query parameters, or POST with the payload
  as form data. The payload is ``{data_key: value, **extra}`` for a field and
  ``{child_name: child_value, ..., **extra}`` for a group.
- response: any 2xx status passes, unless a custom ``is_valid(data, response)``
  decides. ``successMessage`` / ``errorMessage`` in a JSON body are preferred
  over the configured messages.
- network errors, and non-2xx responses without a custom ``is_valid``, raise
  RemoteTransportError. They are faults, not validation failures.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

import httpx

from fieldgate.errors import ConstructionError, RemoteTransportError, ValidationFailed
from fieldgate.registry import Validator
from fieldgate.types import Passed

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity

logger = logging.getLogger(__name__)

# Requirement values that enable a rule without naming an endpoint
_FLAG_VALUES = ("", "true", "1", "yes")

IsValidFn = Callable[[Any, httpx.Response], Any]
ExtractMessagesFn = Callable[[Any], tuple[str | None, str | None]]


def default_extract_messages(data: Any) -> tuple[str | None, str | None]:
    """Read ``successMessage`` and ``errorMessage`` from a decoded body."""
    if not isinstance(data, Mapping):
        return None, None
    return data.get("successMessage"), data.get("errorMessage")


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RemoteValidator(Validator):
    """Validator that asks an HTTP endpoint for the verdict.

    Example:
        registry.register(
            "unique-email",
            RemoteValidator(
                "unique-email",
                endpoint="https://api.example.com/users/check",
                data_key="email",
                is_valid=lambda data, response: not data.get("duplicate"),
            ),
        )
    """

    is_remote = True

    def __init__(
        self,
        name: str,
        endpoint: str | None = None,
        method: str = "GET",
        data_key: str = "value",
        is_valid: IsValidFn | None = None,
        extract_messages: ExtractMessagesFn | None = None,
        message: str | None = None,
        priority: int = -10,
        group: bool = False,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(name, message=message, priority=priority, group=group)
        self.endpoint = endpoint
        self.method = method.upper()
        self.data_key = data_key
        self.is_valid = is_valid
        self.extract_messages = extract_messages or default_extract_messages
        self.client = client
        self.timeout = timeout

    def resolve_endpoint(self, requirement: Any) -> tuple[str | None, dict[str, Any]]:
        """Endpoint URL and extra payload for a requirement.

        The requirement may be a URL string, a mapping with ``url`` (or
        ``endpoint``) and ``extra``, or a plain flag when the validator has its
        own endpoint.
        """
        if isinstance(requirement, Mapping):
            url = requirement.get("url") or requirement.get("endpoint") or self.endpoint
            return url, dict(requirement.get("extra") or {})
        if isinstance(requirement, str) and requirement.strip().lower() not in _FLAG_VALUES:
            return requirement.strip(), {}
        return self.endpoint, {}

    def check_requirement(self, requirement: Any) -> None:
        url, _ = self.resolve_endpoint(requirement)
        if not url:
            raise ConstructionError(f"Remote rule '{self.name}' has no endpoint")

    def build_payload(self, value: Any, entity: "BaseEntity | None", extra: Mapping[str, Any]) -> dict[str, Any]:
        """Build the request payload for a field or a group."""
        children = getattr(entity, "children", None)
        if children:
            payload = {child.name: child.get_value() for child in children}
        else:
            key = self.name if self.data_key == "*" else self.data_key
            payload = {key: value}
        payload.update(extra)
        return payload

    async def validate(self, value: Any, requirement: Any, entity: "BaseEntity | None") -> Any:
        url, extra = self.resolve_endpoint(requirement)
        if not url:
            raise ConstructionError(f"Remote rule '{self.name}' has no endpoint")
        payload = self.build_payload(value, entity, extra)

        logger.debug("Remote check '%s': %s %s %s", self.name, self.method, url, payload)
        response = await self._send(url, payload)
        data = _decode(response)
        success_message, error_message = self.extract_messages(data)

        if self.is_valid is not None:
            verdict = self.is_valid(data, response)
            if inspect.isawaitable(verdict):
                verdict = await verdict
        elif response.is_success:
            verdict = True
        else:
            raise RemoteTransportError(
                f"Remote check '{self.name}' returned {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.debug("Remote check '%s' verdict: %s", self.name, bool(verdict))
        if verdict:
            return Passed(success_message)
        raise ValidationFailed(error_message)

    async def _send(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            if self.client is not None:
                return await self._request(self.client, url, payload)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await self._request(client, url, payload)
        except httpx.HTTPError as e:
            logger.error("Remote check '%s' to %s failed: %s", self.name, url, e)
            raise RemoteTransportError(f"Remote check '{self.name}' failed: {e}") from e

    async def _request(self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]) -> httpx.Response:
        if self.method == "GET":
            return await client.get(url, params=payload)
        return await client.request(self.method, url, data=payload)
