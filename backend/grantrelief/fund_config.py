"""
Fund configuration constants and lookup utilities.

Static program rules for each sponsoring fund (dollar caps, eligible
events and countries, hire-date tenure rules) plus the event catalogue
shared by the application form, the rules engine and the AI prompts.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from grantrelief.models.eligibility import FundLimits

CVType = Literal["Domain", "Roster", "SSO"]


# ============================================================================
# Event Catalogue
# ============================================================================

# Sentinel event that switches the form to the free-text event name
OTHER_EVENT = "My disaster is not listed"

DISASTER_EVENTS: List[str] = [
    "Commercial Carrier Accident",
    "Earthquake",
    "Flood",
    "House Fire",
    "Landslide",
    "Sinkhole",
    "Tornado",
    "Tropical Storm/Hurricane",
    "Typhoon",
    "Volcanic Eruption",
    "Wildfire",
    "Winter Storm",
]

HARDSHIP_EVENTS: List[str] = [
    "Crime",
    "Death",
    "Home Damage (leaks or broken pipes)",
    "Household Loss of Income",
    "Housing Crisis",
    "Mental Health and Well-Being",
    "Workplace Disruption",
]

ALL_EVENT_TYPES: List[str] = [*DISASTER_EVENTS, *HARDSHIP_EVENTS, OTHER_EVENT]


# ============================================================================
# Fund Definitions
# ============================================================================

# Used when a fund has no limits configured or the fund code is unknown
DEFAULT_LIMITS = FundLimits(
    twelve_month_max=10000,
    lifetime_max=50000,
    single_request_max=10000,
)


class HireEligibility(BaseModel):
    employment_start_on_or_before_event: bool = True
    min_tenure_days: int = Field(0, ge=0)


class Fund(BaseModel):
    code: str
    name: str
    cv_type: CVType
    # Registration and form data; decisioning reads only code and limits.
    eligible_countries: List[str] = Field(default_factory=list)
    hire_eligibility: HireEligibility = Field(default_factory=HireEligibility)
    events_enabled: List[str] = Field(default_factory=list)
    limits: Optional[FundLimits] = None

    class Config:
        frozen = True


FUNDS: Dict[str, Fund] = {
    fund.code: fund
    for fund in (
        Fund(
            code="E4E",
            name="E4E Relief",
            cv_type="Domain",
            eligible_countries=["US", "CA", "MX"],
            hire_eligibility=HireEligibility(min_tenure_days=0),
            events_enabled=["Natural Disaster", "House Fire", "Evacuation"],
            limits=FundLimits(
                twelve_month_max=10000,
                lifetime_max=50000,
                single_request_max=10000,
            ),
        ),
        Fund(
            code="JHH",
            name="JHH Relief",
            cv_type="Roster",
            eligible_countries=["US"],
            hire_eligibility=HireEligibility(min_tenure_days=90),
            events_enabled=["Medical Emergency", "Funeral/Travel", "Displacement"],
            limits=FundLimits(
                twelve_month_max=5000,
                lifetime_max=20000,
                single_request_max=2500,
            ),
        ),
        Fund(
            code="SQRT",
            name="Squirtle Relief",
            cv_type="SSO",
            eligible_countries=["US", "GB", "AU", "JP"],
            hire_eligibility=HireEligibility(min_tenure_days=30),
            events_enabled=["Utility Interruption", "Flood", "Wildfire"],
        ),
    )
}


def get_fund_by_code(code: Optional[str]) -> Optional[Fund]:
    """
    Look up a fund by code, ignoring case.

    Args:
        code: Fund code as entered or stored (e.g. ``"e4e"``)

    Returns:
        The matching Fund, or None if the code is empty or unknown
    """
    if not code:
        return None
    return FUNDS.get(code.strip().upper())


def resolve_limits(fund: Optional[Fund]) -> FundLimits:
    """
    Return the dollar caps that apply to a fund.

    Missing funds or funds without configured limits get DEFAULT_LIMITS so
    the decision pipeline always has numbers to work with.
    """
    if fund is None or fund.limits is None:
        return DEFAULT_LIMITS
    return fund.limits
