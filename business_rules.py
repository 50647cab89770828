"""
Business Rules Configuration
Centralized definitions for card thresholds, prioritization, simulation and
database housekeeping rules.
This file allows rules to be changed in one place without modifying tool code.
"""

import os

# ===== FILE LOCATIONS =====
# Support both environment variables and local/relative paths
# Set env vars to override defaults: e.g., export RECOMMENDATION_CARDS_PATH="/path/to/cards.json"

RECOMMENDATION_CARDS_PATH = os.environ.get("RECOMMENDATION_CARDS_PATH", "data/recommendation-cards.json")
RECOMMENDATION_DATA_PATH = os.environ.get("RECOMMENDATION_DATA_PATH", "data/recommendation-data.json")
SUPPLIER_QUALITY_ENHANCED_PATH = os.environ.get(
    "SUPPLIER_QUALITY_ENHANCED_PATH", "data/supplier-quality-enhanced-visualization.json"
)
SUPPLIER_FORECAST_PATH = os.environ.get("SUPPLIER_FORECAST_PATH", "data/supplier-performance-forecast.json")
DASHBOARD_DB_PATH = os.environ.get("DASHBOARD_DB_PATH", "data/dashboard.db")


# ===== RECOMMENDATION CARD RULES =====

CARD_RULES = {
    # Thresholds are only derived once the full card set has arrived
    "min_cards_per_quarter": 18,
    # Rank (1-based) of the card whose |cost delta| becomes the band cutoff
    "high_threshold_rank": 6,
    "medium_threshold_rank": 12,
    "quarters": (1, 2),
    "default_year": 2025,
}

CARD_LISTS = ("recommendations", "shopping", "snoozed", "ignored")
DEFAULT_CARD_LIST = "recommendations"

# Column mapping from the RPC payload (camelCase) to card frame columns
CARD_FIELD_MAP = {
    "locationId": "location_id",
    "componentId": "component_id",
    "quarter": "quarter",
    "year": "year",
    "currentUnits": "current_units",
    "currentCost": "current_cost",
    "recommendedUnits": "recommended_units",
    "recommendedCost": "recommended_cost",
    "unitDelta": "unit_delta",
    "costDelta": "cost_delta",
    "urgency": "urgency",
    "impactLevel": "impact_level",
    "priority": "priority",
    "opportunityScore": "opportunity_score",
    "strategy": "strategy",
}

CARD_NUMERIC_COLUMNS = [
    "current_units", "current_cost", "recommended_units", "recommended_cost",
    "unit_delta", "cost_delta", "opportunity_score",
]

# Impact block keys, in the shape the dashboard consumes
IMPACT_FIELDS = [
    "currentCost", "recommendedCost", "costDelta", "costSavingsPercentage",
    "currentUnits", "recommendedUnits", "unitDelta",
]


# ===== PRIORITIZATION RULES =====

PRIORITY_RULES = {
    "weights": {
        "cost": 0.7,  # 70% weight for cost impact
        "risk": 0.3,  # 30% weight for risk impact
    },

    "opportunity_thresholds": {
        "cost": {"high": -500000, "moderate": -100000},
        "risk": {"high": 0.5, "moderate": 0.2},
    },

    # High-value components need a larger swing before they are flagged
    "high_value_multipliers": {"cost": 2.0, "risk": 1.5},

    "status_thresholds": {
        "high_value": {
            "cost": {"warning": -500000, "critical": -2000000},
            "risk": {"warning": 0.5, "critical": 1.0},
        },
        "standard": {
            "cost": {"warning": -100000, "critical": -500000},
            "risk": {"warning": 0.3, "critical": 0.7},
        },
    },

    "urgent_failure_rate": 0.03,

    "urgency_multipliers": {
        "immediate": 1.0,
        "upcoming": 0.6,
        "future": 0.3,
    },

    "component_multipliers": {
        "ENGINE": 1.2,
        "PREMIUM": 1.1,
    },

    # Normalization scale for cost impact in the opportunity score
    "cost_normalization": 1000000,

    # Priority matrix:
    #             | High Impact | Moderate Impact | Low Impact
    # ------------|-------------|-----------------|------------
    # Immediate   | Critical    | Important       | Standard
    # Upcoming    | Important   | Standard        | Optional
    # Future      | Standard    | Optional        | Optional
    "priority_matrix": {
        "immediate": {"high": "critical", "moderate": "important", "low": "standard"},
        "upcoming": {"high": "important", "moderate": "standard", "low": "optional"},
        "future": {"high": "standard", "moderate": "optional", "low": "optional"},
    },

    "priority_order": {
        "critical": 0,
        "important": 1,
        "standard": 2,
        "optional": 3,
    },
}


# ===== REFERENCE CATALOG =====

COMPONENTS = {
    "ENGINE-A": {"name": "Basic Engine", "baseline_failure_rate": 0.03},
    "ENGINE-B": {"name": "Standard Engine", "baseline_failure_rate": 0.025},
    "CHASSIS-BASIC": {"name": "Basic Chassis", "baseline_failure_rate": 0.02},
    "CHASSIS-PREMIUM": {"name": "Premium Chassis", "baseline_failure_rate": 0.015},
    "HYDRAULICS-SMALL": {"name": "Small Hydraulics", "baseline_failure_rate": 0.04},
    "HYDRAULICS-MEDIUM": {"name": "Medium Hydraulics", "baseline_failure_rate": 0.035},
}

TRACTOR_MODELS = {
    "TX-100": {"components": ["ENGINE-A", "CHASSIS-BASIC", "HYDRAULICS-SMALL"]},
    "TX-300": {"components": ["ENGINE-B", "CHASSIS-BASIC", "HYDRAULICS-MEDIUM"]},
    "TX-500": {"components": ["ENGINE-B", "CHASSIS-PREMIUM", "HYDRAULICS-MEDIUM"]},
}

LOCATION_IDS = ("west", "south", "heartland")

# Focus example used by the recommendation data view
DEFAULT_LOCATION_ID = "heartland"
DEFAULT_MODEL_ID = "TX-300"


# ===== INVENTORY SIMULATION RULES =====

SIMULATION_RULES = {
    "days_per_quarter": 90,
    "current_lead_time_days": 3,
    "safety_stock_percentage": 0.05,
    "q2_seasonality_uplift": 1.4,
    "min_quarterly_demand": 1000,
    "default_q1_demand": 500,
    "default_q2_demand": 600,
    "q2_minimum_growth": 1.2,
    # The current strategy over-orders: consumption is doubled
    "current_demand_multiplier": 2.0,
    "current_consumption_variance": (0.85, 1.15),
    "current_order_variance": (0.8, 1.2),
    "current_display_jitter": 50,
    "recommended_consumption_variance": (0.95, 1.05),
    "recommended_display_jitter": 5,
    "recommended_q1_order_day": 3,
}


# ===== DATABASE HOUSEKEEPING RULES =====

DATABASE_RULES = {
    # Delete order avoids foreign key violations
    "recommendation_tables": [
        "RecommendationImpact",
        "EnhancedReasoning",
        "SupplierAllocation",
        "SupplierAllocationStrategy",
        "QuarterlyRecommendationCard",
    ],
    "visualization_tables": [
        "ModelDemandByLocation",
        "QuarterlyDemandOutlook",
    ],
    "forecast_tables": [
        "SupplierPerformanceForecast",
        "DemandForecast",
        "SupplyChainAnalysis",
    ],
    "operational_tables": [
        "ComponentFailure",
        "Delivery",
        "ComponentInventory",
        "DailyModelDemand",
        "LocationDailyReport",
        "DailyReport",
    ],
    "relationship_tables": [
        "LocationModelPreference",
        "LocationSupplier",
        "ModelComponent",
        "SupplierComponent",
    ],
    "base_tables": [
        "Component",
        "Supplier",
        "TractorModel",
        "Location",
    ],
    "historical_tables": [
        "DailyModelDemand",
        "ComponentInventory",
        "Delivery",
        "ComponentFailure",
        "LocationDailyReport",
        "DailyReport",
    ],
    "demand_forecast_table": "DemandForecast",
}


def get_component_name(component_id):
    """Return the display name for a component, falling back to its id."""
    component = COMPONENTS.get(component_id)
    if component is None:
        return component_id
    return component["name"]


def get_model_components(model_id):
    """Component ids that make up a tractor model (empty for unknown models)."""
    return list(TRACTOR_MODELS.get(model_id, {}).get("components", []))


def is_high_value_component(component_id):
    """
    Engines and premium parts carry higher unit costs, so their cost and risk
    thresholds are scaled up.

    Args:
        component_id: Component identifier (e.g., 'ENGINE-B')

    Returns:
        True if the component name contains 'Engine' or 'Premium'
    """
    # Catalog names are title case ("Standard Engine"); match case-insensitively
    # so engines and premium parts are actually detected. Scores therefore
    # differ from upstream data tagged with a case-sensitive match.
    name = get_component_name(component_id).upper()
    return "ENGINE" in name or "PREMIUM" in name


def get_clear_order(preserve_base=False):
    """
    Build the ordered table list for a full data wipe.

    Args:
        preserve_base: Keep relationship and base entity tables

    Returns:
        List of table names in safe delete order
    """
    tables = (
        DATABASE_RULES["recommendation_tables"]
        + DATABASE_RULES["visualization_tables"]
        + DATABASE_RULES["forecast_tables"]
        + DATABASE_RULES["operational_tables"]
    )
    if not preserve_base:
        tables = tables + DATABASE_RULES["relationship_tables"] + DATABASE_RULES["base_tables"]
    return list(tables)
