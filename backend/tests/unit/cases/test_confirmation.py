"""Unit tests for the two-phase ConfirmationGate."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from casework.cases.confirmation import ConfirmationGate, ProposalStatus


@pytest.fixture
def gate() -> ConfirmationGate:
    return ConfirmationGate()


class TestConfirmationGate:
    """Tests for propose, confirm and cancel."""

    def test_propose_does_not_run(self, gate):
        mutation = MagicMock()

        token = gate.propose("Eliminar", "¿Seguro?", mutation)

        mutation.assert_not_called()
        assert gate.get(token).status == ProposalStatus.PENDING
        assert [p.token for p in gate.pending] == [token]

    @pytest.mark.asyncio
    async def test_confirm_runs_once(self, gate):
        mutation = MagicMock(return_value="done")
        token = gate.propose("Eliminar", "¿Seguro?", mutation)

        result = await gate.confirm(token)

        assert result == "done"
        mutation.assert_called_once_with()
        with pytest.raises(KeyError):
            await gate.confirm(token)
        mutation.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_confirm_awaits_coroutine(self, gate):
        mutation = AsyncMock(return_value=42)
        token = gate.request_confirmation("Eliminar", "¿Seguro?", mutation)

        assert await gate.confirm(token) == 42
        mutation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_discards(self, gate):
        mutation = MagicMock()
        token = gate.propose("Eliminar", "¿Seguro?", mutation)

        proposal = gate.cancel(token)

        assert proposal.status == ProposalStatus.CANCELLED
        assert gate.get(token) is None
        with pytest.raises(KeyError):
            await gate.confirm(token)
        mutation.assert_not_called()

    def test_unknown_token(self, gate):
        with pytest.raises(KeyError):
            gate.cancel("missing")

    @pytest.mark.asyncio
    async def test_failed_mutation_is_resolved(self, gate):
        mutation = AsyncMock(side_effect=RuntimeError("offline"))
        token = gate.propose("Eliminar", "¿Seguro?", mutation)

        with pytest.raises(RuntimeError):
            await gate.confirm(token)

        assert gate.get(token) is None
        assert gate.pending == []

    @pytest.mark.asyncio
    async def test_resolved_proposals_are_dropped(self, gate):
        kept = gate.propose("A", "a", MagicMock())
        confirmed = gate.propose("B", "b", MagicMock())
        cancelled = gate.propose("C", "c", MagicMock())

        await gate.confirm(confirmed)
        gate.cancel(cancelled)

        assert [p.token for p in gate.pending] == [kept]
        assert gate.get(confirmed) is None
        assert gate.get(cancelled) is None
