"""
IPN Package - Bank Instant Payment Notification ingestion.

Modules:
- auth: Credential strategies (basic auth, header pair)
- validate: Liveness probe / notification / malformed classification
- reference: Narration parsing into a canonical reference
- schema: Wire-key mapping and canonical record building
- responses: Status/body contract with the sender
- pipeline: Main orchestrator
- keepalive: Best-effort self-ping
"""
from .config import Config, ResponseShape
from .errors import ConfigError, PersistenceFailure
from .pipeline import IPNPipeline

__all__ = ['Config', 'ResponseShape', 'ConfigError', 'PersistenceFailure', 'IPNPipeline']
