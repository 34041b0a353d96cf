"""Error taxonomy for the risk and claim engine.

ValidationError:
    Bad caller input. Raised before any state change.
NotFoundError:
    A referenced site, product, claim or report does not exist.
DependencyError:
    A store (signal or metric collaborator) is unreachable or failing.
    Only services performing I/O raise it; the pure scorer and assessor never do.
DuplicateRecordError:
    A store rejected a write because of a uniqueness constraint. Services
    treat it as "someone else just created it" and re-fetch.

A ``no_evidence`` verdict is a normal assessment outcome, not an error.
"""

from typing import Optional


class RiskScopeError(Exception):
    """Base class for all engine errors."""


class ValidationError(RiskScopeError):
    """Input rejected before any write."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(RiskScopeError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class DependencyError(RiskScopeError):
    """An external store failed or could not be reached.

    Args:
        message: Description of the failing step
        claim_id: Claim left in ``new`` status when the failure happened after
            the claim row was written
    """

    def __init__(self, message: str, claim_id: Optional[str] = None):
        super().__init__(message)
        self.claim_id = claim_id


class DuplicateRecordError(RiskScopeError):
    """A uniqueness constraint in the backing store was violated."""

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} already exists: {key}")
        self.entity = entity
        self.key = key
