"""
Profile form schemas for startups and investors.
"""
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

STAGES = ("Idea", "Pre-Seed", "Seed", "Early", "Growth")
REVENUE_STATUSES = ("Pre-Revenue", "Revenue Generating", "Profitable")
RISK_TOLERANCES = ("Low", "Medium", "High")

Stage = Literal["Idea", "Pre-Seed", "Seed", "Early", "Growth"]


def split_csv(value) -> List[str]:
    """Turn 'AI, SaaS ,,Fintech' into ['AI', 'SaaS', 'Fintech'], de-duplicated in order."""
    if value is None:
        return []
    parts = value if isinstance(value, list) else str(value).split(",")
    seen = []
    for part in parts:
        item = str(part).strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class StartupProfileForm(BaseModel):
    """Startup pitch attributes."""
    model_config = ConfigDict(allow_inf_nan=False)

    startup_name: str = Field(..., min_length=1, max_length=120)
    industry: str = Field(..., min_length=1, max_length=80)
    stage: Stage
    funding_required: float = Field(..., gt=0)
    equity_offered: Optional[float] = Field(None, ge=0, le=100)
    location: str = Field(..., min_length=1, max_length=120)
    revenue_status: Optional[Literal["Pre-Revenue", "Revenue Generating", "Profitable"]] = None
    team_size: Optional[int] = Field(None, ge=1)
    pitch_description: str = Field(..., min_length=1, max_length=5000)
    tags: List[str] = Field(default_factory=list)

    @field_validator('equity_offered', 'revenue_status', 'team_size', mode='before')
    @classmethod
    def empty_optional(cls, v):
        return blank_to_none(v)

    @field_validator('startup_name', 'industry', 'location', 'pitch_description')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator('tags', mode='before')
    @classmethod
    def parse_tags(cls, v):
        return split_csv(v)


class InvestorProfileForm(BaseModel):
    """Investor preferences."""
    model_config = ConfigDict(allow_inf_nan=False)

    investor_name: Optional[str] = Field(None, max_length=120)
    firm_name: str = Field(..., min_length=1, max_length=120)
    preferred_industries: List[str] = Field(default_factory=list)
    preferred_stages: List[Stage] = Field(default_factory=list)
    investment_type: Optional[str] = Field(None, max_length=60)
    min_investment: float = Field(..., ge=0)
    max_investment: float = Field(..., ge=0)
    location_preference: Optional[str] = Field(None, max_length=120)
    risk_tolerance: Optional[Literal["Low", "Medium", "High"]] = None
    active_mentoring: bool = False
    portfolio_tags: List[str] = Field(default_factory=list)
    bio: Optional[str] = Field(None, max_length=5000)

    @field_validator('investor_name', 'investment_type', 'location_preference', 'risk_tolerance', 'bio', mode='before')
    @classmethod
    def empty_optional(cls, v):
        v = blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator('firm_name')
    @classmethod
    def strip_firm(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator('preferred_industries', 'portfolio_tags', mode='before')
    @classmethod
    def parse_lists(cls, v):
        return split_csv(v)

    @field_validator('preferred_stages', mode='before')
    @classmethod
    def parse_stages(cls, v):
        return split_csv(v)

    @model_validator(mode='after')
    def check_range(self):
        if self.min_investment > self.max_investment:
            raise ValueError("Minimum investment cannot exceed maximum investment")
        return self
