# holdings_tracker/schemas/portfolios.py
"""
Pydantic schemas for portfolio metadata.
"""

from pydantic import BaseModel, Field, field_validator


class AssetClassesUpdate(BaseModel):
    """Replace the asset class labels offered for a portfolio."""

    asset_classes: list[str] = Field(
        ...,
        max_length=50,
        description="Labels such as 'Stocks', 'ETF', 'Bonds'",
        examples=[["Stocks", "ETF"]]
    )

    @field_validator('asset_classes')
    @classmethod
    def validate_labels(cls, v: list[str]) -> list[str]:
        for label in v:
            if len(label.strip()) > 50:
                raise ValueError("Asset class labels cannot exceed 50 characters")
        return v


class AssetClassesResponse(BaseModel):
    portfolio_id: str
    asset_classes: list[str]
