"""
Recommendation Prioritization Module
====================================
Tags recommendation cards with status, urgency, impact level, priority and
an opportunity score from their cost and risk deltas.

Cost deltas are negative when the recommendation saves money. Risk deltas
are positive when the recommendation reduces supply risk.
"""

import pandas as pd

from business_rules import (
    COMPONENTS,
    PRIORITY_RULES,
    is_high_value_component,
)


def determine_recommendation_status(cost_delta: float, risk_delta: float, component_id: str) -> str:
    """
    Classify a recommendation as 'high-impact', 'opportunity' or 'optimal'.

    High-value components (engines, premium parts) use wider thresholds.

    Args:
        cost_delta: Recommended minus current cost (negative = savings)
        risk_delta: Risk reduction (positive = less risk)
        component_id: Component identifier

    Returns:
        Status string
    """
    tier = 'high_value' if is_high_value_component(component_id) else 'standard'
    thresholds = PRIORITY_RULES["status_thresholds"][tier]

    if cost_delta <= thresholds["cost"]["critical"] or risk_delta >= thresholds["risk"]["critical"]:
        return 'high-impact'

    if cost_delta <= thresholds["cost"]["warning"] or risk_delta >= thresholds["risk"]["warning"]:
        return 'opportunity'

    return 'optimal'


def adjust_status_for_quarter(status: str, quarter: int) -> str:
    """Q2 recommendations are downgraded one status level."""
    if quarter == 2:
        if status == 'high-impact':
            return 'opportunity'
        if status == 'opportunity':
            return 'optimal'
    return status


def determine_recommendation_urgency(quarter: int, component_id: str) -> str:
    """
    Q1 engines and failure-prone components are 'immediate', other Q1
    recommendations are 'upcoming', and everything later is 'future'.
    """
    if quarter != 1:
        return 'future'

    component = COMPONENTS.get(component_id, {})
    # Case-insensitive, same as is_high_value_component
    is_engine = 'ENGINE' in component.get('name', '').upper()
    failure_rate = component.get('baseline_failure_rate', 0)
    if is_engine or failure_rate > PRIORITY_RULES["urgent_failure_rate"]:
        return 'immediate'
    return 'upcoming'


def determine_recommendation_impact(cost_delta: float, risk_delta: float, component_id: str) -> str:
    """
    Classify impact as 'high', 'moderate' or 'low'.

    Cost thresholds are doubled and risk thresholds raised by half for
    high-value components. Whichever of cost or risk is stronger wins.

    Args:
        cost_delta: Recommended minus current cost (negative = savings)
        risk_delta: Risk reduction (positive = less risk)
        component_id: Component identifier

    Returns:
        Impact level string
    """
    base = PRIORITY_RULES["opportunity_thresholds"]
    cost_multiplier = 1.0
    risk_multiplier = 1.0
    if is_high_value_component(component_id):
        cost_multiplier = PRIORITY_RULES["high_value_multipliers"]["cost"]
        risk_multiplier = PRIORITY_RULES["high_value_multipliers"]["risk"]

    cost_high = base["cost"]["high"] * cost_multiplier
    cost_moderate = base["cost"]["moderate"] * cost_multiplier
    risk_high = base["risk"]["high"] * risk_multiplier
    risk_moderate = base["risk"]["moderate"] * risk_multiplier

    if cost_delta <= cost_high or risk_delta >= risk_high:
        return 'high'

    if cost_delta <= cost_moderate or risk_delta >= risk_moderate:
        return 'moderate'

    return 'low'


def determine_recommendation_priority(urgency: str, impact: str) -> str:
    """Combine urgency and impact through the priority matrix."""
    try:
        return PRIORITY_RULES["priority_matrix"][urgency][impact]
    except KeyError:
        raise ValueError(f"Unknown urgency/impact combination: {urgency}/{impact}")


def calculate_opportunity_score(cost_delta: float, risk_delta: float, urgency: str, component_id: str) -> float:
    """
    Opportunity score for sorting recommendations (higher = better).

    Formula:
        (min(|cost| / 1M, 1) * 0.7 + clamp(risk, 0, 1) * 0.3)
        * urgency multiplier * component multiplier * 100

    Args:
        cost_delta: Recommended minus current cost
        risk_delta: Risk reduction
        urgency: 'immediate', 'upcoming' or 'future'
        component_id: Component identifier

    Returns:
        Score between 0 and 120
    """
    weights = PRIORITY_RULES["weights"]
    normalized_cost = min(abs(cost_delta) / PRIORITY_RULES["cost_normalization"], 1)
    normalized_risk = max(0, min(risk_delta, 1))

    urgency_multiplier = PRIORITY_RULES["urgency_multipliers"].get(urgency, PRIORITY_RULES["urgency_multipliers"]["future"])

    # Keywords match title-case catalog names case-insensitively
    name = COMPONENTS.get(component_id, {}).get('name', '').upper()
    component_multiplier = 1.0
    for keyword, multiplier in PRIORITY_RULES["component_multipliers"].items():
        if keyword in name:
            component_multiplier = multiplier
            break

    score = (
        (normalized_cost * weights["cost"] + normalized_risk * weights["risk"])
        * urgency_multiplier
        * component_multiplier
        * 100
    )
    return score


def prioritize_cards(cards_df: pd.DataFrame, risk_deltas=None) -> pd.DataFrame:
    """
    Tag every card with urgency, impact level, priority and opportunity score.

    Args:
        cards_df: Cards with 'component_id', 'quarter' and 'cost_delta'
        risk_deltas: Optional mapping card_id -> risk delta (default 0)

    Returns:
        Copy of cards_df with prioritization columns filled in
    """
    df = cards_df.copy()
    if df.empty:
        return df

    risk_deltas = risk_deltas or {}
    if 'card_id' in df.columns:
        risks = [risk_deltas.get(cid, 0.0) for cid in df['card_id']]
    else:
        risks = [0.0] * len(df)

    df['urgency'] = [
        determine_recommendation_urgency(q, comp) for q, comp in zip(df['quarter'], df['component_id'])
    ]
    df['impact_level'] = [
        determine_recommendation_impact(cost, risk, comp)
        for cost, risk, comp in zip(df['cost_delta'], risks, df['component_id'])
    ]
    df['priority'] = [
        determine_recommendation_priority(u, i) for u, i in zip(df['urgency'], df['impact_level'])
    ]
    df['opportunity_score'] = [
        calculate_opportunity_score(cost, risk, u, comp)
        for cost, risk, u, comp in zip(df['cost_delta'], risks, df['urgency'], df['component_id'])
    ]
    return df


def sort_cards_by_priority(cards_df: pd.DataFrame) -> pd.DataFrame:
    """
    Sort cards by quarter (Q1 first), then priority
    (critical > important > standard > optional), then opportunity score
    (highest first).
    """
    if cards_df.empty:
        return cards_df
    order = PRIORITY_RULES["priority_order"]
    df = cards_df.assign(_priority_rank=cards_df['priority'].map(order).fillna(len(order)))
    df = df.sort_values(
        by=['quarter', '_priority_rank', 'opportunity_score'],
        ascending=[True, True, False],
        kind='mergesort',
    )
    return df.drop(columns=['_priority_rank'])


def format_cost_impact(cost_delta: float) -> str:
    """Format a cost delta as '-$1,234' (savings) or '+$1,234' (investment)."""
    if cost_delta < 0:
        return f"-${abs(cost_delta):,.0f}"
    return f"+${cost_delta:,.0f}"


def enhance_rationale_with_impact(original_rationale, unit_delta, cost_delta, risk_delta, priority):
    """
    Prefix the rationale with the priority context and append impact lines.

    Args:
        original_rationale: List of rationale sentences
        unit_delta: Recommended minus current units
        cost_delta: Recommended minus current cost
        risk_delta: Risk reduction
        priority: Card priority

    Returns:
        New list of rationale sentences
    """
    priority_context = {
        'critical': 'This is a high-priority opportunity that requires immediate attention.',
        'important': 'This is an important opportunity to improve your supply chain.',
        'standard': 'This represents a standard optimization opportunity.',
    }.get(priority, 'This is an optional improvement that can be considered when time permits.')

    rationale = [priority_context] + list(original_rationale)

    if unit_delta != 0:
        if unit_delta > 0:
            rationale.append(f"Opportunity to optimize inventory by adding {unit_delta:,.0f} units.")
        else:
            rationale.append(
                f"Opportunity to reduce inventory by {abs(unit_delta):,.0f} units while maintaining service levels."
            )

    if cost_delta != 0:
        if cost_delta < 0:
            rationale.append(f"Potential savings of ${abs(cost_delta):,.0f} with this allocation strategy.")
        else:
            rationale.append(f"Investment of ${cost_delta:,.0f} to improve reliability and service levels.")

    if risk_delta > 0:
        rationale.append(
            f"Opportunity to improve supply chain reliability by approximately {round(risk_delta * 100)}%."
        )

    return rationale


def calculate_total_cost_impact(cost_deltas) -> float:
    """Sum a {location: {component: cost_delta}} mapping."""
    return float(sum(
        delta
        for by_component in cost_deltas.values()
        for delta in by_component.values()
    ))


def calculate_risk_reduction_percentage(risk_deltas) -> float:
    """Percentage of recommendations in a {location: {component: risk_delta}} mapping that reduce risk."""
    values = [delta for by_component in risk_deltas.values() for delta in by_component.values()]
    if not values:
        return 0.0
    return sum(1 for v in values if v > 0) / len(values) * 100
