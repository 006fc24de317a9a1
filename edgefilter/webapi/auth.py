"""Bearer token check for the filter web API.

The expected token comes from :class:`~edgefilter.config.WebAPISettings`:
``token`` in ``webapi.yaml`` (or ``EDGEFILTER_WEBAPI_TOKEN``), otherwise the
first line of ``token_file``. Settings are re-read on every request so a
rotated token applies without restarting the server.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Optional

import anyio
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from edgefilter.config import WebAPISettings, load_webapi_settings

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def resolve_token(settings: WebAPISettings) -> Optional[str]:
    """Return the token required by ``settings`` or None when auth is off."""

    if settings.token:
        return settings.token
    if not settings.token_file:
        return None
    try:
        text = Path(settings.token_file).read_text(encoding="utf-8")
    except FileNotFoundError:
        # Un token_file configurado pero ausente no abre la API.
        logger.error("No existe el archivo de token %s", settings.token_file)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token de la API no disponible",
        )
    except OSError as exc:
        raise RuntimeError(f"No se pudo leer el token desde {settings.token_file}: {exc}") from exc
    lines = text.strip().splitlines()
    return lines[0].strip() if lines else None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_token(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer_scheme),
) -> None:
    settings = await anyio.to_thread.run_sync(load_webapi_settings)
    if not settings.auth_enabled:
        return
    expected = await anyio.to_thread.run_sync(resolve_token, settings)
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token de la API no disponible",
        )
    if credentials is None:
        raise _unauthorized("Token requerido")
    if credentials.scheme.lower() != "bearer" or not secrets.compare_digest(
        credentials.credentials.encode("utf-8"), expected.encode("utf-8")
    ):
        raise _unauthorized("Token inválido")
