"""Response models for the Moneytree LINK API."""
from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field


def _null_as_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _null_as_empty_dict(value: Any) -> Any:
    return {} if value is None else value


# Moneytree sends null for empty collections.
NullSafeList = BeforeValidator(_null_as_empty_list)
NullSafeDict = BeforeValidator(_null_as_empty_dict)


class ErrorEnvelope(BaseModel):
    """Error body returned by Moneytree on 4xx/5xx responses."""

    error: Optional[str] = None
    error_description: Optional[str] = None


class TokenResponse(BaseModel):
    """Result of an OAuth token exchange."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    created_at: Optional[int] = None


# --- Profile -----------------------------------------------------------------


class Profile(BaseModel):
    """Guest profile. ``email`` may change and must not be used as a key."""

    locale_identifier: Optional[str] = None
    email: Optional[str] = None
    moneytree_id: Optional[str] = None


class AccountGroup(BaseModel):
    """Accounts registered together through a single financial service login."""

    account_group: int
    institution_entity_key: str
    aggregation_state: str
    aggregation_status: str
    # Null until the first aggregation finishes.
    last_aggregated_at: Optional[dt.datetime] = None
    last_aggregated_success: Optional[dt.datetime] = None
    id: Optional[int] = None


class AccountGroups(BaseModel):
    account_groups: Annotated[List[AccountGroup], NullSafeList] = Field(default_factory=list)


# --- Accounts ----------------------------------------------------------------


class PersonalAccount(BaseModel):
    """Individual account: bank, credit card, stored value, point or stock."""

    account_key: str
    account_group: int
    institution_entity_key: str
    account_type: str
    name: Optional[str] = None
    balance: Optional[float] = None
    currency: Optional[str] = None
    last_aggregated_at: Optional[dt.datetime] = None
    id: Optional[int] = None


class PersonalAccounts(BaseModel):
    accounts: Annotated[List[PersonalAccount], NullSafeList] = Field(default_factory=list)


class CorporateAccountAttributes(BaseModel):
    """Only populated when the token carries the account_holder_read scope."""

    account_holder_name_katakana_raw: Optional[str] = None
    account_holder_name_katakana_zengin: Optional[str] = None


class _AggregatedAccount(BaseModel):
    id: int
    account_key: str
    account_group: int
    account_subtype: Optional[str] = None
    account_type: Optional[str] = None
    currency: Optional[str] = None
    institution_entity_key: Optional[str] = None
    institution_id: Optional[int] = None
    institution_account_name: Optional[str] = None
    institution_account_number: Optional[str] = None
    institution_account_type: Optional[str] = None
    nickname: Optional[str] = None
    branch_name: Optional[str] = None
    branch_code: Optional[str] = None
    aggregation_state: Optional[str] = None
    aggregation_status: Optional[str] = None
    last_aggregated_at: Optional[dt.datetime] = None
    last_aggregated_success: Optional[dt.datetime] = None
    current_balance: Optional[float] = None
    current_balance_in_base: Optional[float] = None
    current_balance_data_source: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class CorporateAccount(_AggregatedAccount):
    account_attributes: Optional[CorporateAccountAttributes] = None


class CorporateAccounts(BaseModel):
    accounts: Annotated[List[CorporateAccount], NullSafeList] = Field(default_factory=list)


class InvestmentAccount(_AggregatedAccount):
    """Securities, pension and insurance-like accounts."""


class InvestmentAccounts(BaseModel):
    accounts: Annotated[List[InvestmentAccount], NullSafeList] = Field(default_factory=list)


class PointAccount(BaseModel):
    id: int
    account_group: int
    account_type: str = "point"
    currency: Optional[str] = None
    institution_entity_key: Optional[str] = None
    institution_account_name: Optional[str] = None
    nickname: Optional[str] = None
    current_balance: Optional[float] = None
    aggregation_state: Optional[str] = None
    aggregation_status: Optional[str] = None
    last_aggregated_at: Optional[dt.datetime] = None
    last_aggregated_success: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class PointAccounts(BaseModel):
    point_accounts: Annotated[List[PointAccount], NullSafeList] = Field(default_factory=list)


# --- Balances ----------------------------------------------------------------


class Balance(BaseModel):
    """
    Balance record as confirmed on the institution's site.

    balance_type (balance details only):
      0 = total / ordinary balance, 1 = undetermined, 2 = confirmed,
      3 = long-term debt (revolving, bonus, installment).
    """

    id: int
    account_id: int
    date: dt.date
    balance: float
    balance_in_base: Optional[float] = None
    balance_type: Optional[int] = None


class AccountBalances(BaseModel):
    account_balances: Annotated[List[Balance], NullSafeList] = Field(default_factory=list)


class DueBalance(BaseModel):
    id: int
    account_id: int
    date: dt.date
    due_amount: Optional[float] = None
    due_date: Optional[dt.date] = None


class AccountDueBalances(BaseModel):
    due_balances: Optional[DueBalance] = None


# --- Transactions ------------------------------------------------------------


class Transaction(BaseModel):
    """A booked transaction. Every description variant may be absent."""

    id: int
    amount: float
    date: dt.datetime
    account_id: int
    category_id: Optional[int] = None
    description_guest: Optional[str] = None
    description_pretty: Optional[str] = None
    description_raw: Optional[str] = None
    raw_transaction_id: Optional[int] = None
    category_entity_key: Optional[str] = None
    attributes: Annotated[Dict[str, Any], NullSafeDict] = Field(default_factory=dict)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def description(self) -> Optional[str]:
        """Best available description: guest edit, then cleaned, then raw."""
        for candidate in (self.description_guest, self.description_pretty, self.description_raw):
            if candidate is not None:
                return candidate
        return None


class Transactions(BaseModel):
    transactions: Annotated[List[Transaction], NullSafeList] = Field(default_factory=list)


class TermDeposit(BaseModel):
    id: int
    account_id: int
    date: dt.date
    purchase_date: Optional[dt.date] = None
    maturity_date: Optional[dt.date] = None
    name_raw: Optional[str] = None
    name_clean: Optional[str] = None
    value: float
    cost_basis: Optional[float] = None
    interest_rate: Optional[float] = None
    currency: str
    term_length_year: Optional[int] = None
    term_length_month: Optional[int] = None
    term_length_day: Optional[int] = None


class TermDeposits(BaseModel):
    term_deposits: Annotated[List[TermDeposit], NullSafeList] = Field(default_factory=list)


class PointExpiration(BaseModel):
    id: int
    account_id: int
    expiration_amount: float
    expiration_date: dt.date
    date: dt.datetime


class PointExpirations(BaseModel):
    point_expirations: Annotated[List[PointExpiration], NullSafeList] = Field(default_factory=list)


class InvestmentPosition(BaseModel):
    """Latest known holding; a new id is issued whenever the position changes."""

    id: int
    date: dt.date
    asset_class: Optional[str] = None
    asset_subclass: Optional[str] = None
    ticker_code: Optional[str] = None
    # Deprecated upstream aliases: ticker, value, cost_basis.
    ticker: Optional[str] = None
    name_raw: Optional[str] = None
    name_clean: Optional[str] = None
    currency: Optional[str] = None
    tax_type: Annotated[List[str], NullSafeList] = Field(default_factory=list)
    tax_sub_type: Optional[str] = None
    market_value: Optional[float] = None
    value: Optional[float] = None
    acquisition_value: Optional[float] = None
    cost_basis: Optional[float] = None
    profit: Optional[float] = None
    quantity: Optional[float] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class InvestmentPositions(BaseModel):
    positions: Annotated[List[InvestmentPosition], NullSafeList] = Field(default_factory=list)


# --- Institutions ------------------------------------------------------------


class Institution(BaseModel):
    """Financial service known to Moneytree. Check ``status`` before use."""

    entity_key: str
    institution_type: Optional[str] = None
    display_name: Optional[str] = None
    display_name_reading: Optional[str] = None
    status: Optional[str] = None
    status_reason: Optional[str] = None
    certificate_required: Optional[int] = None
    login_url: Optional[str] = None
    guidance_url: Optional[str] = None
    billing_group: Optional[str] = None
    tags: Annotated[List[str], NullSafeList] = Field(default_factory=list)
    default_authorization_type: Optional[int] = None
    id: Optional[int] = None


class Institutions(BaseModel):
    institutions: Annotated[List[Institution], NullSafeList] = Field(default_factory=list)
