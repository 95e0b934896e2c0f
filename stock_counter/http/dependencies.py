"""
Request-scoped dependencies shared by the controllers.
Tests swap these through app.dependency_overrides.
"""
from fastapi import Depends, Request

from stock_counter.config import settings
from stock_counter.models import Credential
from stock_counter.services.credentials import CredentialProvider


def get_credential_provider() -> CredentialProvider:
    return CredentialProvider(settings)


def require_credential(
    request: Request,
    provider: CredentialProvider = Depends(get_credential_provider),
) -> Credential:
    """Credential for this request, or Unauthenticated (401, needsAuth)."""
    return provider.require(request)
