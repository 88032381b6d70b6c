# PURPOSE: Trade executors behind the async TradeExecutor interface.
# CONTEXT: No brokerage is wired in; PaperTradeExecutor simulates fills and hands back order ids.

from __future__ import annotations
import asyncio
import uuid
from typing import Dict, List, Sequence

import structlog

from wealthpulse.model_interface.collaborators import TradeExecutor
from wealthpulse.model_interface.types import TradeInstruction

log = structlog.get_logger(__name__)


class PaperTradeExecutor(TradeExecutor):
    """Records submitted trades and returns one synthetic order id per trade."""

    def __init__(self, fill_delay_s: float = 0.0):
        self.fill_delay_s = fill_delay_s
        self.orders: Dict[str, TradeInstruction] = {}

    async def submit(self, user_id: str, trades: Sequence[TradeInstruction]) -> List[str]:
        ids: List[str] = []
        for t in trades:
            if self.fill_delay_s:
                await asyncio.sleep(self.fill_delay_s)
            order_id = f"paper_{uuid.uuid4().hex[:10]}"
            self.orders[order_id] = t
            ids.append(order_id)
        log.info("executor.paper.filled", user_id=user_id, orders=len(ids))
        return ids
