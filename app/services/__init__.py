"""Service layer exports."""

from .credential_cipher import CredentialCipher
from .enrichment import EnrichmentOutcome, WebhookEnrichmentPipeline
from .token_manager import NotAuthorized, TokenLifecycleManager, TokenRefreshFailed

__all__ = [
    "CredentialCipher",
    "EnrichmentOutcome",
    "NotAuthorized",
    "TokenLifecycleManager",
    "TokenRefreshFailed",
    "WebhookEnrichmentPipeline",
]
