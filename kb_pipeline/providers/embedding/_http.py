"""Shared HTTP plumbing for the REST embedding adapters."""

from __future__ import annotations

from typing import Any

import httpx

from kb_pipeline.utils.errors import ProviderError


async def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    provider_name: str,
    label: str,
    headers: dict[str, str] | None = None,
    timeout: float = 60.0,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """POST *payload* as JSON and return the decoded response body.

    Non-2xx responses raise :class:`ProviderError` with the upstream body
    included verbatim; transport failures raise it with the httpx message.
    A caller-supplied *client* is used as-is and left open.
    """
    try:
        if client is not None:
            response = await client.post(url, json=payload, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise ProviderError(
            message=f"{label} request failed: {exc}",
            provider_name=provider_name,
        ) from exc

    if response.is_error:
        raise ProviderError(
            message=f"{label} API error ({response.status_code}): {response.text}",
            provider_name=provider_name,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(
            message=f"{label} returned a non-JSON body: {response.text[:500]}",
            provider_name=provider_name,
        ) from exc
