"""
Tests for shopping_list module
Tests supplier order lines and per-supplier grouping
"""

import pytest
import pandas as pd
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shopping_list import (
    ORDER_GROUP_COLUMNS,
    ORDER_ITEM_COLUMNS,
    build_supplier_order_items,
    calculate_shopping_list_savings,
    group_orders_by_supplier,
)
from conftest import make_card, to_frame


@pytest.fixture
def accepted_cards():
    """Three accepted cards: a single-supplier, a split and one without allocations"""
    return to_frame([
        make_card(location_id='heartland', component_id='ENGINE-A', recommended_units=40, cost_delta=-2000,
                  allocations=[{'supplierId': 'Atlas', 'percentage': 100}]),
        make_card(location_id='heartland', component_id='ENGINE-B', recommended_units=105, cost_delta=-1000,
                  allocations=[{'supplierId': 'Atlas', 'percentage': 60}, {'supplierId': 'Bolt', 'percentage': 40}]),
        make_card(location_id='west', component_id='ENGINE-A', recommended_units=30, cost_delta=500),
    ])


class TestOrderItems:
    """Test splitting cards into supplier order lines"""

    def test_split_by_allocation(self, accepted_cards):
        items = build_supplier_order_items(accepted_cards)
        split = items[items['component_id'] == 'ENGINE-B'].set_index('supplier')

        assert split.loc['Atlas', 'units'] == 63
        assert split.loc['Bolt', 'units'] == 42
        assert split.loc['Atlas', 'cost_impact'] == pytest.approx(-600.0)
        assert split.loc['Bolt', 'cost_impact'] == pytest.approx(-400.0)
        assert split.loc['Atlas', 'component_name'] == 'Standard Engine'

    def test_card_without_allocations_is_unknown(self, accepted_cards):
        """Cards with no strategy become one 'Unknown' line at 100%"""
        items = build_supplier_order_items(accepted_cards)
        unknown = items[items['supplier'] == 'Unknown']

        assert len(unknown) == 1
        assert unknown['percentage'].iloc[0] == 100.0
        assert unknown['units'].iloc[0] == 30
        assert unknown['cost_impact'].iloc[0] == 500

    def test_missing_supplier_id_is_unknown(self):
        """Allocations without a supplier id still become an order"""
        cards = to_frame([make_card(recommended_units=20, cost_delta=-800, allocations=[
            {'supplierId': None, 'percentage': 100},
        ])])
        items = build_supplier_order_items(cards)
        assert items['supplier'].tolist() == ['Unknown']

        groups = group_orders_by_supplier(items)
        assert len(groups) == 1
        assert groups['total_units'].iloc[0] == 20
        assert calculate_shopping_list_savings(groups) == pytest.approx(800.0)

    def test_empty_supplier_id_is_unknown(self):
        cards = to_frame([make_card(allocations=[{'supplierId': '', 'percentage': 100}])])
        assert build_supplier_order_items(cards)['supplier'].tolist() == ['Unknown']

    def test_halves_round_up(self):
        """2.5 units rounds to 3"""
        cards = to_frame([make_card(recommended_units=5, allocations=[
            {'supplierId': 'Crank', 'percentage': 50},
            {'supplierId': 'Dynamo', 'percentage': 50},
        ])])
        items = build_supplier_order_items(cards)
        assert items['units'].tolist() == [3, 3]

    def test_empty_shopping_list(self):
        items = build_supplier_order_items(pd.DataFrame())
        assert items.empty
        assert list(items.columns) == ORDER_ITEM_COLUMNS


class TestSupplierGrouping:
    """Test one order per supplier and location"""

    def test_groups(self, accepted_cards):
        groups = group_orders_by_supplier(build_supplier_order_items(accepted_cards))

        assert groups['supplier'].tolist() == ['Atlas', 'Bolt', 'Unknown']
        atlas = groups.iloc[0]
        assert atlas['location'] == 'Heartland'
        assert atlas['item_count'] == 2
        assert atlas['total_units'] == 40 + 63
        assert atlas['total_savings'] == pytest.approx(2600.0)

    def test_same_supplier_different_locations(self):
        """A supplier serving two locations gets two orders"""
        cards = to_frame([
            make_card(location_id='west', allocations=[{'supplierId': 'Elite', 'percentage': 100}]),
            make_card(location_id='south', allocations=[{'supplierId': 'Elite', 'percentage': 100}]),
        ])
        groups = group_orders_by_supplier(build_supplier_order_items(cards))
        assert len(groups) == 2
        assert set(groups['location']) == {'West', 'South'}

    def test_total_savings(self, accepted_cards):
        """Savings add |cost_impact| across every order"""
        groups = group_orders_by_supplier(build_supplier_order_items(accepted_cards))
        assert calculate_shopping_list_savings(groups) == pytest.approx(3500.0)

    def test_empty_items(self):
        groups = group_orders_by_supplier(pd.DataFrame(columns=ORDER_ITEM_COLUMNS))
        assert groups.empty
        assert list(groups.columns) == ORDER_GROUP_COLUMNS
        assert calculate_shopping_list_savings(groups) == 0.0
