"""Two-phase confirmation for destructive mutations.

Removing an intervention from the field notebook, or deleting a case,
task or intervention, is visible data loss for the caseworker. Such
mutations are first proposed, which returns a token for the prompt, and
only run when that token is confirmed. Cancelling the token discards
the mutation and leaves the prior state unchanged.
"""

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

from ..logging import log_confirmation
from .models import utcnow


class ProposalStatus(str, Enum):
    """Resolution state of a proposal."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass
class Proposal:
    """A mutation awaiting the caseworker's answer."""

    token: str
    title: str
    message: str
    mutation: Callable[[], Any]
    status: ProposalStatus = ProposalStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)


class ConfirmationGate:
    """Holds proposed mutations until they are confirmed or cancelled.

    A mutation runs at most once, and only through ``confirm``. The
    mutation may be a plain callable or return an awaitable; ``confirm``
    awaits it in the second case. Resolved proposals are dropped, so
    the gate only ever holds pending ones.
    """

    def __init__(self) -> None:
        self._proposals: dict[str, Proposal] = {}

    def propose(self, title: str, message: str, mutation: Callable[[], Any]) -> str:
        """Register a mutation and return the token identifying it.

        Args:
            title: Prompt title
            message: Prompt body explaining the consequence
            mutation: Zero-argument callable applied on confirmation

        Returns:
            Token to pass to ``confirm`` or ``cancel``
        """
        token = uuid4().hex
        self._proposals[token] = Proposal(
            token=token, title=title, message=message, mutation=mutation
        )
        log_confirmation(token, title, "proposed")
        return token

    def request_confirmation(
        self, title: str, message: str, on_confirm: Callable[[], Any]
    ) -> str:
        """Prompt-style alias for ``propose``."""
        return self.propose(title, message, on_confirm)

    def get(self, token: str) -> Proposal | None:
        """Pending proposal for ``token``, or None once resolved."""
        return self._proposals.get(token)

    @property
    def pending(self) -> list[Proposal]:
        """Proposals still waiting for an answer, oldest first."""
        return list(self._proposals.values())

    def _resolve(self, token: str, status: ProposalStatus) -> Proposal:
        proposal = self._proposals.pop(token, None)
        if proposal is None:
            raise KeyError(f"Unknown or already resolved confirmation token {token}")
        proposal.status = status
        log_confirmation(token, proposal.title, status.value)
        return proposal

    async def confirm(self, token: str) -> Any:
        """Apply the proposed mutation.

        Returns:
            Whatever the mutation returned

        Raises:
            KeyError: If the token is unknown or already resolved
        """
        # Resolved before running; a failed mutation needs a new proposal
        proposal = self._resolve(token, ProposalStatus.CONFIRMED)

        result = proposal.mutation()
        if inspect.isawaitable(result):
            result = await result
        return result

    def cancel(self, token: str) -> Proposal:
        """Discard the proposed mutation. The prior state stands.

        Returns:
            The cancelled proposal

        Raises:
            KeyError: If the token is unknown or already resolved
        """
        return self._resolve(token, ProposalStatus.CANCELLED)
