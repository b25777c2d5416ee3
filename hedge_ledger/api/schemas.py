"""Request body models for hedge ledger endpoints.

Bodies only check shape and types. Business rules such as positive prices are
enforced by the ledger layer so every rejection carries the same error payload.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from hedge_ledger.domain import HedgeDirection, HedgeReferenceType
from hedge_ledger.ledger import HedgeFixingCloseInput, HedgeRequestDraft, HedgeRollInput, HedgeTradeInput


class _ApiBody(BaseModel):
    model_config = ConfigDict(extra="forbid")


class HedgeRequestCreateBody(_ApiBody):
    """Body for manual hedge request creation."""

    metal: str
    direction: HedgeDirection
    quantity_mt: Decimal
    reference: HedgeReferenceType = HedgeReferenceType.LME_CASH
    target_price: Decimal | None = None
    target_price_currency: str | None = None
    order_id: str | None = None
    ticket_id: int | None = None
    bl_order_id: int | None = None
    reason: str | None = None
    broker_preference: str | None = None
    notes: str | None = None
    submit_for_approval: bool = False

    def body_to_draft(self) -> HedgeRequestDraft:
        return HedgeRequestDraft(**self.model_dump())


class HedgeRequestRejectBody(_ApiBody):
    reason: str = ""


class HedgeTradeBody(_ApiBody):
    """Trade details of a newly booked execution."""

    executed_price: Decimal
    execution_date: date | None = None
    expiry_date: date | None = None
    executed_price_currency: str = "USD"
    broker_name: str | None = None
    contract_reference: str | None = None
    notes: str | None = None

    def body_to_trade(self) -> HedgeTradeInput:
        return HedgeTradeInput(**self.model_dump())


class HedgeRollBody(_ApiBody):
    """Inputs for a roll operation."""

    close_price: Decimal
    close_date: date | None = None
    new_trade: HedgeTradeBody
    close_quantity_mt: Decimal | None = None
    close_currency: str | None = None
    roll_cost: Decimal | None = None
    reason: str | None = None

    def body_to_roll(self) -> HedgeRollInput:
        return HedgeRollInput(
            close_price=self.close_price,
            close_date=self.close_date,
            new_trade=self.new_trade.body_to_trade(),
            close_quantity_mt=self.close_quantity_mt,
            close_currency=self.close_currency,
            roll_cost=self.roll_cost,
            reason=self.reason,
        )


class HedgeFixingCloseBody(_ApiBody):
    close_price: Decimal
    close_date: date | None = None
    close_quantity_mt: Decimal | None = None
    close_currency: str | None = None
    notes: str | None = None

    def body_to_fixing_close(self) -> HedgeFixingCloseInput:
        return HedgeFixingCloseInput(**self.model_dump())


class HedgeRollRequestBody(_ApiBody):
    """Body for deriving a roll or fixing-close request from an execution."""

    quantity_mt: Decimal | None = None
    desired_expiry: date | None = None
    notes: str | None = None


class HedgePriceFixRequestBody(_ApiBody):
    """Body for deriving a price-fix request from an execution."""

    order_id: str = Field(min_length=1)
    quantity_mt: Decimal | None = None
    fixing_date: date | None = None
    notes: str | None = None
