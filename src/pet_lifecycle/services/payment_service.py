"""Settlement Provider — the fund-custody collaborator behind the escrow ledger.

Real fund custody is out of scope. In simulation mode the provider hands out
placeholder settlement references and fake transaction hashes. Every call is
bounded by ``settlement_timeout_seconds`` so a slow provider can never hold
the surrounding database transaction open indefinitely; confirmation is
assumed to happen out of band.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING

from pet_lifecycle.config import Settings, get_settings
from pet_lifecycle.domain.exceptions import SettlementError
from pet_lifecycle.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from decimal import Decimal

logger = get_logger(__name__)


class SettlementProvider:
    """Creates, releases and refunds escrowed funds."""

    def __init__(self, simulate: bool | None = None, settings: Settings | None = None) -> None:
        """Initialize the provider.

        Args:
            simulate: If True, generate placeholder references and tx hashes.
                     Defaults to the ``settlement_simulate`` setting.
        """
        self._settings = settings or get_settings()
        self._simulate = self._settings.settlement_simulate if simulate is None else simulate

    async def create_reference(self, amount: Decimal) -> str:
        """Open a custody account for ``amount`` and return its reference."""
        return await self._bounded("create", self._create_reference(amount))

    async def release(self, reference: str, amount: Decimal) -> str:
        """Pay escrowed funds out. Returns the settlement tx hash."""
        return await self._bounded("release", self._transfer("release", reference, amount))

    async def refund(self, reference: str, amount: Decimal) -> str:
        """Return escrowed funds. Returns the settlement tx hash."""
        return await self._bounded("refund", self._transfer("refund", reference, amount))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _bounded(self, operation: str, call: Awaitable[str]) -> str:
        try:
            return await asyncio.wait_for(call, timeout=self._settings.settlement_timeout_seconds)
        except TimeoutError as exc:
            logger.error("settlement.timeout", operation=operation)
            raise SettlementError(operation, "provider timed out") from exc
        except SettlementError:
            raise
        except Exception as exc:
            logger.error("settlement.failed", operation=operation, error=str(exc))
            raise SettlementError(operation, str(exc)) from exc

    async def _create_reference(self, amount: Decimal) -> str:
        if self._simulate:
            reference = f"ESCROW_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
            logger.info(
                "settlement.reference_created",
                reference=reference,
                amount=str(amount),
                simulated=True,
            )
            return reference

        raise NotImplementedError("Real fund custody integration is not implemented")

    async def _transfer(self, operation: str, reference: str, amount: Decimal) -> str:
        if self._simulate:
            tx_hash = "0x" + uuid.uuid4().hex + uuid.uuid4().hex
            logger.info(
                f"settlement.{operation}_simulated",
                reference=reference,
                amount=str(amount),
                tx_hash=tx_hash,
            )
            return tx_hash

        raise NotImplementedError("Real fund custody integration is not implemented")
