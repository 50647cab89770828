"""
Shopping List Module
Turns accepted recommendation cards into supplier-level order lines and
groups them into one purchase order per supplier and location.
"""

import numpy as np
import pandas as pd

from business_rules import get_component_name

ORDER_ITEM_COLUMNS = [
    'card_id', 'supplier', 'location_id', 'component_id', 'component_name',
    'quarter', 'year', 'units', 'percentage', 'cost_impact',
]

ORDER_GROUP_COLUMNS = ['supplier', 'location', 'location_id', 'item_count', 'total_units', 'total_savings']


def _supplier_allocations(strategy):
    if not isinstance(strategy, dict):
        return []
    pieces = strategy.get('topLevelSuggestionPieces') or {}
    return pieces.get('supplierAllocations') or []


def build_supplier_order_items(shopping_df: pd.DataFrame) -> pd.DataFrame:
    """
    Split each accepted card into one order line per supplier allocation.

    Units are the card's recommended units scaled by the allocation
    percentage and rounded. Cost impact is the card's cost delta scaled by the
    same percentage. A card without allocations becomes a single 'Unknown'
    supplier line at 100%.

    Args:
        shopping_df: Cards currently in the shopping list

    Returns:
        DataFrame of order lines (ORDER_ITEM_COLUMNS)
    """
    items = []
    if shopping_df is None or shopping_df.empty:
        return pd.DataFrame(columns=ORDER_ITEM_COLUMNS)

    for card in shopping_df.to_dict('records'):
        base = {
            'card_id': card.get('card_id'),
            'location_id': card.get('location_id'),
            'component_id': card.get('component_id'),
            'component_name': get_component_name(card.get('component_id')),
            'quarter': card.get('quarter'),
            'year': card.get('year'),
        }
        allocations = _supplier_allocations(card.get('strategy'))

        if not allocations:
            items.append({
                **base,
                'supplier': 'Unknown',
                'units': card.get('recommended_units', 0),
                'percentage': 100.0,
                'cost_impact': card.get('cost_delta', 0),
            })
            continue

        for allocation in allocations:
            percentage = float(allocation.get('percentage', 0) or 0)
            items.append({
                **base,
                'supplier': allocation.get('supplierId') or 'Unknown',
                # halves round up
                'units': int(np.floor(float(card.get('recommended_units', 0)) * percentage / 100 + 0.5)),
                'percentage': percentage,
                'cost_impact': float(card.get('cost_delta', 0)) * percentage / 100,
            })

    return pd.DataFrame(items, columns=ORDER_ITEM_COLUMNS)


def group_orders_by_supplier(items_df: pd.DataFrame) -> pd.DataFrame:
    """
    Group order lines into one order per supplier and location.

    Args:
        items_df: Output of build_supplier_order_items

    Returns:
        DataFrame sorted by supplier name with item count, total units and
        total savings (sum of |cost_impact|)
    """
    if items_df is None or items_df.empty:
        return pd.DataFrame(columns=ORDER_GROUP_COLUMNS)

    df = items_df.assign(abs_cost_impact=items_df['cost_impact'].abs())
    grouped = (
        df.groupby(['supplier', 'location_id'], sort=False)
        .agg(
            item_count=('card_id', 'size'),
            total_units=('units', 'sum'),
            total_savings=('abs_cost_impact', 'sum'),
        )
        .reset_index()
    )
    grouped['location'] = grouped['location_id'].astype(str).str.capitalize()
    grouped = grouped.sort_values(['supplier', 'location_id'], kind='mergesort').reset_index(drop=True)
    return grouped[ORDER_GROUP_COLUMNS]


def calculate_shopping_list_savings(groups_df: pd.DataFrame) -> float:
    """Total savings across all supplier orders."""
    if groups_df is None or groups_df.empty:
        return 0.0
    return float(groups_df['total_savings'].sum())
