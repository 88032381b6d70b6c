# PURPOSE: Validated input records for the analytics core.
# CONTEXT: These are the ingestion boundary. Anything that reaches the calculators has
#          already passed through one of these models, so the calculators never see a
#          negative amount, an unknown transaction type or a lopsided target allocation.

from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wealthpulse.constants.asset_classes import (
    TRADITIONAL_TYPES,
    TARGET_TRADITIONAL,
    TARGET_LONGEVITY,
)
from wealthpulse.model_interface.types import (
    AccountType,
    AssetClass,
    AssetType,
    Risk,
    TxnType,
)


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    date: datetime
    amount: float = Field(..., ge=0)
    category: str = "other"
    type: TxnType
    merchant: Optional[str] = None


class Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: AccountType
    balance: float
    last_activity_date: datetime
    monthly_transaction_count: int = Field(0, ge=0)


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    type: AssetType
    quantity: float = Field(..., ge=0)
    current_price: float = Field(0.0, ge=0)
    volatility: float = Field(20.0, ge=0, le=100)

    @property
    def asset_class(self) -> AssetClass:
        return "traditional" if self.type in TRADITIONAL_TYPES else "longevity"

    @property
    def value(self) -> float:
        return self.quantity * self.current_price


class TargetAllocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    traditional: float = Field(TARGET_TRADITIONAL, ge=0, le=100)
    longevity: float = Field(TARGET_LONGEVITY, ge=0, le=100)

    @model_validator(mode="after")
    def _sums_to_100(self):
        if abs(self.traditional + self.longevity - 100) > 1e-6:
            raise ValueError("target allocation must sum to 100")
        return self


DEFAULT_TARGET = TargetAllocation()


class PortfolioSnapshot(BaseModel):
    """Point-in-time view of a portfolio handed to the compliance gate."""
    model_config = ConfigDict(frozen=True)

    total_value: float = Field(0.0, ge=0)
    traditional: float = Field(0.0, ge=0, le=100)
    longevity: float = Field(0.0, ge=0, le=100)
    volatility: float = Field(0.0, ge=0)
    last_rebalance_date: datetime
    risk_profile: Risk = "moderate"


class InvestorProfile(BaseModel):
    age: int = Field(..., ge=0)
    risk_profile: Risk = "moderate"
    minimum_balance: float = 0.0
    accredited_investor: bool = False
