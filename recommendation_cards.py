"""
Recommendation Cards Module
===========================
Derives the view-state the recommendations dashboard shows on top of the
precomputed quarterly cards.

Key Features:
- Priority banding thresholds from the 6th/12th largest |cost delta| per quarter
- Quarter and H1 savings and unit efficiency percentages
- Q1/Q2/H1 impact totals for a location/model focus and for all cards
- Card filtering and grouping into High/Medium/Lower impact bands
- Card board: exclusive list assignment (recommendations, shopping,
  snoozed, ignored) with thresholds derived once per session
"""

import pandas as pd
import numpy as np
from typing import Dict, List, Optional

from business_rules import (
    CARD_RULES,
    CARD_LISTS,
    DEFAULT_CARD_LIST,
    IMPACT_FIELDS,
)


# ===== THRESHOLDS =====

def _abs_cost_deltas_desc(cards_df: pd.DataFrame) -> np.ndarray:
    if cards_df is None or cards_df.empty:
        return np.array([], dtype=float)
    values = np.abs(pd.to_numeric(cards_df['cost_delta'], errors='coerce').fillna(0).to_numpy(dtype=float))
    return np.sort(values)[::-1]


def compute_quarter_thresholds(cards_df: pd.DataFrame) -> Dict[str, float]:
    """
    Compute the High/Medium cutoffs for one quarter's cards.

    Cards are ranked by |cost_delta| descending. The High cutoff is the
    |cost_delta| of the 6th card and the Medium cutoff that of the 12th card.
    With fewer cards than the rank, the cutoff is 0.

    Args:
        cards_df: Cards for a single quarter (needs 'cost_delta')

    Returns:
        dict: {'high': float, 'medium': float}
    """
    ranked = _abs_cost_deltas_desc(cards_df)
    high_rank = CARD_RULES["high_threshold_rank"]
    medium_rank = CARD_RULES["medium_threshold_rank"]

    high = float(ranked[high_rank - 1]) if len(ranked) >= high_rank else 0.0
    medium = float(ranked[medium_rank - 1]) if len(ranked) >= medium_rank else 0.0
    return {'high': high, 'medium': medium}


def compute_thresholds(cards_df: pd.DataFrame) -> Optional[Dict[str, Dict[str, float]]]:
    """
    Compute Q1 and Q2 banding thresholds for the full card set.

    Thresholds are only produced once both quarters have the full set of
    cards (min_cards_per_quarter); otherwise None is returned so the caller
    can retry once more cards have arrived.

    Args:
        cards_df: All cards (needs 'quarter' and 'cost_delta')

    Returns:
        {'q1': {'high', 'medium'}, 'q2': {'high', 'medium'}} or None
    """
    if cards_df is None or cards_df.empty:
        return None

    min_cards = CARD_RULES["min_cards_per_quarter"]
    q1_cards = cards_df[cards_df['quarter'] == 1]
    q2_cards = cards_df[cards_df['quarter'] == 2]

    if len(q1_cards) < min_cards or len(q2_cards) < min_cards:
        print(f"[CARDS DEBUG] Thresholds deferred: Q1={len(q1_cards)} Q2={len(q2_cards)} cards (need {min_cards} each)")
        return None

    return {
        'q1': compute_quarter_thresholds(q1_cards),
        'q2': compute_quarter_thresholds(q2_cards),
    }


# ===== SAVINGS & EFFICIENCY =====

def calculate_efficiency_percentage(current_units_sum: float, recommended_units_sum: float) -> float:
    """
    Unit efficiency of the recommendation versus the current strategy.

    Formula: (current - recommended) / current * 100, clamped to [0, 100]

    Returns 0 when there are no current units. A recommendation that adds
    units is reported as 0 and a negative recommended total as 100.

    Args:
        current_units_sum: Total units under the current strategy
        recommended_units_sum: Total recommended units

    Returns:
        Efficiency percentage in [0, 100], never NaN
    """
    current = float(current_units_sum or 0)
    recommended = float(recommended_units_sum or 0)

    if current == 0 or np.isnan(current) or np.isnan(recommended):
        return 0.0

    efficiency = (current - recommended) / current * 100
    return min(100.0, max(0.0, efficiency))


def _cards_for_quarter(cards_df: pd.DataFrame, quarter: Optional[int]) -> pd.DataFrame:
    if quarter is None:
        return cards_df
    return cards_df[cards_df['quarter'] == quarter]


def calculate_quarter_efficiency(cards_df: pd.DataFrame, quarter: Optional[int] = None) -> float:
    """
    Efficiency percentage for one quarter, or for all cards (H1) when
    quarter is None.
    """
    if cards_df is None or cards_df.empty:
        return 0.0
    subset = _cards_for_quarter(cards_df, quarter)
    return calculate_efficiency_percentage(subset['current_units'].sum(), subset['recommended_units'].sum())


def calculate_quarter_savings(cards_df: pd.DataFrame, quarter: int) -> float:
    """Sum of |cost_delta| across a quarter's cards."""
    if cards_df is None or cards_df.empty:
        return 0.0
    subset = _cards_for_quarter(cards_df, quarter)
    return float(subset['cost_delta'].abs().sum())


def calculate_impact_metrics(cards_df: pd.DataFrame) -> Dict[str, float]:
    """
    Headline impact metrics for the recommendations summary.

    Returns:
        dict with q1_savings, q2_savings, h1_savings and
        q1/q2/h1_efficiency_percentage
    """
    q1_savings = calculate_quarter_savings(cards_df, 1)
    q2_savings = calculate_quarter_savings(cards_df, 2)

    return {
        'q1_savings': q1_savings,
        'q2_savings': q2_savings,
        'h1_savings': q1_savings + q2_savings,
        'q1_efficiency_percentage': calculate_quarter_efficiency(cards_df, 1),
        'q2_efficiency_percentage': calculate_quarter_efficiency(cards_df, 2),
        'h1_efficiency_percentage': calculate_quarter_efficiency(cards_df, None),
    }


# ===== IMPACT TOTALS =====

_IMPACT_SOURCE_COLUMNS = {
    'currentCost': 'current_cost',
    'recommendedCost': 'recommended_cost',
    'costDelta': 'cost_delta',
    'currentUnits': 'current_units',
    'recommendedUnits': 'recommended_units',
    'unitDelta': 'unit_delta',
}


def _impact_block(cards_df: pd.DataFrame) -> Dict[str, float]:
    block = {field: 0.0 for field in IMPACT_FIELDS}
    if cards_df is not None and not cards_df.empty:
        for field, col in _IMPACT_SOURCE_COLUMNS.items():
            block[field] = float(cards_df[col].sum())

    if block['currentCost'] > 0:
        block['costSavingsPercentage'] = abs(block['costDelta']) / block['currentCost'] * 100
    return block


def calculate_total_impact(cards_df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    """
    Q1, Q2 and H1 impact totals for a set of cards.

    Each block sums current/recommended cost and units and the cost and unit
    deltas. costSavingsPercentage = |costDelta| / currentCost * 100 when
    currentCost > 0, else 0. Any card not in Q1 is counted in Q2.

    Args:
        cards_df: Cards to aggregate

    Returns:
        {'q1': {...}, 'q2': {...}, 'h1': {...}}
    """
    if cards_df is None or cards_df.empty:
        return {period: _impact_block(None) for period in ('q1', 'q2', 'h1')}

    is_q1 = cards_df['quarter'] == 1
    return {
        'q1': _impact_block(cards_df[is_q1]),
        'q2': _impact_block(cards_df[~is_q1]),
        'h1': _impact_block(cards_df),
    }


def calculate_scoped_impacts(cards_df: pd.DataFrame, location_id: str, component_ids: List[str]) -> Dict[str, dict]:
    """
    Impact totals at three scopes used by the recommendation overview:

    - total: the focus location restricted to the model's components
    - overall: every card
    - location: every card at the focus location

    Args:
        cards_df: All cards
        location_id: Focus location (e.g., 'heartland')
        component_ids: Components of the focus model

    Returns:
        dict with 'total', 'overall' and 'location' impact blocks
    """
    if cards_df is None or cards_df.empty:
        return {scope: calculate_total_impact(None) for scope in ('total', 'overall', 'location')}

    at_location = cards_df[cards_df['location_id'] == location_id]
    focus = at_location[at_location['component_id'].isin(component_ids)]

    return {
        'total': calculate_total_impact(focus),
        'overall': calculate_total_impact(cards_df),
        'location': calculate_total_impact(at_location),
    }


# ===== FILTERING & BANDING =====

def sort_by_cost_impact(cards_df: pd.DataFrame) -> pd.DataFrame:
    """Sort cards by |cost_delta| descending (highest savings first)."""
    if cards_df is None or cards_df.empty:
        return cards_df
    order = cards_df['cost_delta'].abs().sort_values(ascending=False, kind='mergesort').index
    return cards_df.loc[order]


def filter_cards(
    cards_df: pd.DataFrame,
    view_mode: Optional[str] = None,
    priority='all',
    quarter='all',
    component_id='all',
) -> pd.DataFrame:
    """
    Apply the dashboard filters and sort by highest savings.

    Each filter is skipped when set to 'all' (or None for view_mode).

    Args:
        cards_df: Card frame with a 'list' column
        view_mode: List to show ('recommendations', 'snoozed', 'ignored', ...)
        priority: Priority to keep or 'all'
        quarter: Quarter number to keep or 'all'
        component_id: Component to keep or 'all'

    Returns:
        Filtered, sorted DataFrame
    """
    if cards_df is None or cards_df.empty:
        return cards_df

    mask = pd.Series(True, index=cards_df.index)
    if view_mode is not None:
        mask &= cards_df['list'] == view_mode
    if priority not in (None, 'all'):
        mask &= cards_df['priority'] == priority
    if quarter not in (None, 'all'):
        mask &= cards_df['quarter'] == quarter
    if component_id not in (None, 'all'):
        mask &= cards_df['component_id'] == component_id

    return sort_by_cost_impact(cards_df[mask])


def build_categories(thresholds: Optional[dict], year: int = CARD_RULES["default_year"]) -> List[dict]:
    """
    Band definitions for the recommendation list, highest first per quarter.

    Missing thresholds count as 0.
    """
    categories = []
    for quarter in CARD_RULES["quarters"]:
        key = f"q{quarter}"
        quarter_thresholds = (thresholds or {}).get(key) or {}
        categories.extend([
            {
                'id': f'high-{key}',
                'label': f'High Impact - Q{quarter} {year}',
                'quarter': quarter,
                'threshold': quarter_thresholds.get('high', 0) or 0,
                'is_highest': True,
            },
            {
                'id': f'medium-{key}',
                'label': f'Medium Impact - Q{quarter} {year}',
                'quarter': quarter,
                'threshold': quarter_thresholds.get('medium', 0) or 0,
                'is_highest': False,
            },
            {
                'id': f'low-{key}',
                'label': f'Lower Impact - Q{quarter} {year}',
                'quarter': quarter,
                'threshold': 0,
                'is_highest': False,
            },
        ])
    return categories


def categorize_cards(cards_df: pd.DataFrame, thresholds: Optional[dict]) -> List[dict]:
    """
    Group cards into High/Medium/Lower impact bands per quarter.

    The highest band takes cards with |cost_delta| >= its threshold. Other
    bands take cards between their threshold and the next higher band's
    threshold. A card lands in at most one band (the first that matches).

    Args:
        cards_df: Cards to group (typically the filtered view)
        thresholds: Output of compute_thresholds (None allowed)

    Returns:
        List of category dicts, each with a 'cards' DataFrame
    """
    categories = build_categories(thresholds)
    assigned = set()
    grouped = []

    for category in categories:
        if cards_df is None or cards_df.empty:
            grouped.append({**category, 'cards': cards_df})
            continue

        matching = cards_df[(cards_df['quarter'] == category['quarter']) & (~cards_df['card_id'].isin(assigned))]
        matching = sort_by_cost_impact(matching)
        magnitude = matching['cost_delta'].abs()

        if category['is_highest']:
            matching = matching[magnitude >= category['threshold']]
        else:
            higher = next(
                (c for c in categories
                 if c['quarter'] == category['quarter'] and c['threshold'] > category['threshold']),
                None,
            )
            if higher is not None:
                matching = matching[(magnitude >= category['threshold']) & (magnitude < higher['threshold'])]
            else:
                matching = matching[magnitude >= category['threshold']]

        assigned.update(matching['card_id'])
        grouped.append({**category, 'cards': matching})

    return grouped


def get_active_category(categories: List[dict]) -> Optional[dict]:
    """First category that has any cards, or None."""
    for category in categories:
        cards = category.get('cards')
        if cards is not None and not cards.empty:
            return category
    return None


# ===== CARD BOARD (VIEW STATE) =====

class CardBoard:
    """
    In-session view state over the recommendation cards.

    Every card carries exactly one list tag. Actions replace the tag, so a
    card can never sit in two lists. Thresholds are derived once, the first
    time the full card set is present, and stay frozen until reset_cards().
    """

    def __init__(self, cards_df: pd.DataFrame):
        self.cards = self._with_list_column(cards_df)
        self.thresholds = None
        self.thresholds_initialized = False
        self.ensure_thresholds()

    @staticmethod
    def _with_list_column(cards_df):
        df = cards_df.copy() if cards_df is not None else pd.DataFrame(columns=['card_id', 'list'])
        if 'list' not in df.columns:
            df['list'] = DEFAULT_CARD_LIST
        df['list'] = df['list'].fillna(DEFAULT_CARD_LIST)
        return df.reset_index(drop=True)

    # --- thresholds ---

    def ensure_thresholds(self):
        """Compute thresholds if they have not been frozen yet."""
        if self.thresholds_initialized:
            return self.thresholds

        thresholds = compute_thresholds(self.cards)
        if thresholds is not None:
            self.thresholds = thresholds
            self.thresholds_initialized = True
        return self.thresholds

    # --- list assignment ---

    def move_card(self, card_id, list_name):
        """Put a card in exactly one list, replacing its previous tag."""
        if list_name not in CARD_LISTS:
            raise ValueError(f"Unknown card list '{list_name}'. Expected one of {', '.join(CARD_LISTS)}")
        mask = self.cards['card_id'] == card_id
        if not mask.any():
            raise KeyError(f"Card not found: {card_id}")
        self.cards.loc[mask, 'list'] = list_name

    def accept(self, card_id):
        """Move a card to the shopping list."""
        self.move_card(card_id, 'shopping')

    def snooze(self, card_id):
        self.move_card(card_id, 'snoozed')

    def ignore(self, card_id):
        self.move_card(card_id, 'ignored')

    def remove_from_shopping_list(self, card_id):
        """Send a card back to the recommendations list."""
        self.move_card(card_id, 'recommendations')

    def reset_cards(self):
        """Return every card to recommendations and allow thresholds to be recomputed."""
        self.cards['list'] = DEFAULT_CARD_LIST
        self.thresholds_initialized = False
        self.ensure_thresholds()

    def refresh(self, cards_df: pd.DataFrame):
        """
        Replace the card data with a fresh fetch.

        List tags of cards that still exist are kept. Frozen thresholds stay
        frozen; if they were never computed, the new data gets a chance.
        """
        previous = dict(zip(self.cards['card_id'], self.cards['list'])) if 'card_id' in self.cards else {}
        fresh = self._with_list_column(cards_df)
        if not fresh.empty:
            fresh['list'] = [previous.get(cid, DEFAULT_CARD_LIST) for cid in fresh['card_id']]
        self.cards = fresh
        self.ensure_thresholds()

    # --- derived views ---

    def cards_in(self, list_name):
        return self.cards[self.cards['list'] == list_name]

    @property
    def shopping_list(self):
        return self.cards_in('shopping')

    @property
    def snoozed_cards(self):
        return self.cards_in('snoozed')

    @property
    def ignored_cards(self):
        return self.cards_in('ignored')

    def filtered_cards(self, view_mode='recommendations', priority='all', quarter='all', component_id='all'):
        return filter_cards(self.cards, view_mode, priority, quarter, component_id)

    def categorized_cards(self, **filters):
        return categorize_cards(self.filtered_cards(**filters), self.thresholds)

    def impact_metrics(self):
        return calculate_impact_metrics(self.cards)
