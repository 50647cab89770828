"""
Inventory Simulation Module

Simulates daily inventory over Q1 and Q2 for the current ordering strategy
(daily replenishment with a short lead time, over-ordering) versus the
recommended strategy (one bulk order per quarter with a small safety stock).

The output feeds the current-vs-recommended inventory comparison chart.
"""

import pandas as pd
import numpy as np
from typing import Optional, Tuple

from business_rules import SIMULATION_RULES

QUARTER_MONTHS = {
    1: ('01', '02', '03'),
    2: ('04', '05', '06'),
}


def extract_quarterly_demand(forecast_points, year: int = 2025) -> Tuple[float, float]:
    """
    Total forecast demand for Q1 and Q2 of a year.

    Points are matched by their 'date' prefix (YYYY-MM). Missing quarters
    fall back to the default demand. Q2 is forced above Q1, and both are
    scaled up together when Q1 is below the minimum quarterly demand so the
    chart shows visible movement.

    Args:
        forecast_points: Iterable of {'date': 'YYYY-MM-DD', 'value': float}
        year: Forecast year

    Returns:
        tuple: (q1_demand, q2_demand)
    """
    q1_demand = float(SIMULATION_RULES["default_q1_demand"])
    q2_demand = float(SIMULATION_RULES["default_q2_demand"])

    totals = {1: [], 2: []}
    for point in forecast_points or []:
        date = str(point.get('date') or '')
        for quarter, months in QUARTER_MONTHS.items():
            if any(date.startswith(f"{year}-{month}") for month in months):
                totals[quarter].append(float(point.get('value') or 0))

    if totals[1]:
        q1_demand = sum(totals[1])
    if totals[2]:
        q2_demand = sum(totals[2])

    if q2_demand <= q1_demand:
        q2_demand = q1_demand * SIMULATION_RULES["q2_minimum_growth"]

    min_demand = SIMULATION_RULES["min_quarterly_demand"]
    if 0 < q1_demand < min_demand:
        scale_factor = min_demand / q1_demand
        q1_demand = float(min_demand)
        q2_demand *= scale_factor

    return q1_demand, q2_demand


def simulate_inventory_levels(
    starting_inventory: float,
    q1_demand: float,
    q2_demand: float,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Simulate 180 days of inventory under both strategies.

    Current strategy:
    - Consumes twice the daily forecast with +/-15% variance
    - Orders what it consumed each day (+/-20%), delivered after the lead time
    - A few orders are already in transit on day 0

    Recommended strategy:
    - Consumes the daily forecast with +/-5% variance
    - Bulk order on day 3 of Q1 and day 0 of Q2 covering the quarter's demand
      plus safety stock, minus inventory on hand

    Q2 demand is uplifted for seasonality before simulation. Levels never go
    below zero.

    Args:
        starting_inventory: Units on hand at day 0
        q1_demand: Total Q1 demand
        q2_demand: Total Q2 demand
        seed: Optional RNG seed for reproducible runs

    Returns:
        DataFrame with columns day, current_strategy, recommended_strategy
    """
    rng = np.random.default_rng(seed)
    rules = SIMULATION_RULES
    days_per_quarter = rules["days_per_quarter"]
    lead_time = rules["current_lead_time_days"]
    safety_stock_pct = rules["safety_stock_percentage"]

    adjusted_q2_demand = q2_demand * rules["q2_seasonality_uplift"]
    daily_demand = {
        1: q1_demand / days_per_quarter,
        2: adjusted_q2_demand / days_per_quarter,
    }

    # --- Current strategy: daily ordering ---
    current_levels = []
    inventory = float(starting_inventory)
    orders_in_transit = {}
    for i in range(lead_time):
        orders_in_transit[-i] = daily_demand[1] * (2 + rng.random())

    low, high = rules["current_consumption_variance"]
    order_low, order_high = rules["current_order_variance"]
    jitter = rules["current_display_jitter"]

    for day in range(days_per_quarter * 2):
        quarter = 1 if day < days_per_quarter else 2
        consumption = daily_demand[quarter] * rules["current_demand_multiplier"] * rng.uniform(low, high)

        delivery_day = day - lead_time
        if delivery_day in orders_in_transit:
            inventory += orders_in_transit.pop(delivery_day)

        orders_in_transit[day] = consumption * rng.uniform(order_low, order_high)
        inventory = max(0.0, inventory - consumption)

        variation = rng.integers(-jitter, jitter)
        current_levels.append(max(0.0, inventory + variation))

    # --- Recommended strategy: bulk ordering with safety stock ---
    recommended_levels = []
    inventory = float(starting_inventory)
    low, high = rules["recommended_consumption_variance"]
    jitter = rules["recommended_display_jitter"]
    quarter_demand = {1: q1_demand, 2: adjusted_q2_demand}
    order_day = {1: rules["recommended_q1_order_day"], 2: 0}

    for day in range(days_per_quarter * 2):
        quarter = 1 if day < days_per_quarter else 2
        day_in_quarter = day - (quarter - 1) * days_per_quarter
        consumption = daily_demand[quarter] * rng.uniform(low, high)

        order_amount = 0.0
        if day_in_quarter == order_day[quarter]:
            total_needed = quarter_demand[quarter] * (1 + safety_stock_pct)
            order_amount = max(0.0, total_needed - inventory)

        inventory = max(0.0, inventory - consumption + order_amount)

        variation = rng.integers(-jitter, jitter)
        recommended_levels.append(max(0.0, inventory + variation))

    return pd.DataFrame({
        'day': np.arange(days_per_quarter * 2),
        'current_strategy': current_levels,
        'recommended_strategy': recommended_levels,
    })


def simulation_to_series(simulation_df: pd.DataFrame) -> dict:
    """
    Convert a simulation frame into the {x, y} point lists the comparison
    chart consumes.
    """
    return {
        'currentStrategy': [
            {'x': int(d), 'y': float(y)} for d, y in zip(simulation_df['day'], simulation_df['current_strategy'])
        ],
        'recommendedStrategy': [
            {'x': int(d), 'y': float(y)} for d, y in zip(simulation_df['day'], simulation_df['recommended_strategy'])
        ],
    }
