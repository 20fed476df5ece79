"""
Pydantic schemas for account listings and persistence snapshots
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .accounts import AccountCategory

# Category codes written by the legacy flat-file format
LEGACY_CATEGORY_CODES = {
    "0": AccountCategory.SAVINGS,
    "1": AccountCategory.CURRENT,
}


class AccountSummary(BaseModel):
    """Read-only projection of an account: the listing and snapshot row shape"""
    model_config = ConfigDict(frozen=True)

    account_number: str = Field(..., min_length=1)
    holder_name: str
    category: AccountCategory
    balance: Decimal = Field(..., ge=0, description="Balance rounded to cents")

    @field_validator("account_number", "holder_name", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("category", mode="before")
    @classmethod
    def parse_legacy_category(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return LEGACY_CATEGORY_CODES.get(value, value)
        if isinstance(value, int) and not isinstance(value, bool):
            return LEGACY_CATEGORY_CODES.get(str(value), value)
        return value

    def as_row(self) -> tuple:
        """Tuple form (account_number, holder_name, category, balance)"""
        return (self.account_number, self.holder_name, self.category, self.balance)
