"""
Tests for prioritization module
Tests status, urgency, impact, priority matrix and opportunity scoring
"""

import pytest
import pandas as pd
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prioritization import (
    adjust_status_for_quarter,
    calculate_opportunity_score,
    calculate_risk_reduction_percentage,
    calculate_total_cost_impact,
    determine_recommendation_impact,
    determine_recommendation_priority,
    determine_recommendation_status,
    determine_recommendation_urgency,
    enhance_rationale_with_impact,
    format_cost_impact,
    prioritize_cards,
    sort_cards_by_priority,
)
from business_rules import COMPONENTS, is_high_value_component
from conftest import make_card, to_frame


class TestStatus:
    """Test recommendation status classification"""

    def test_high_value_component_detection(self):
        """Engine and premium parts are high value regardless of name casing"""
        assert is_high_value_component('ENGINE-B')
        assert is_high_value_component('CHASSIS-PREMIUM')
        assert not is_high_value_component('CHASSIS-BASIC')
        assert not is_high_value_component('UNKNOWN-PART')

    def test_title_case_names_detected(self):
        """Catalog names are title case, not the upper-case keywords"""
        assert COMPONENTS['ENGINE-B']['name'] == 'Standard Engine'
        assert is_high_value_component('ENGINE-B')
        assert is_high_value_component('custom-engine')
        assert is_high_value_component('Premium-Hydraulics')

    def test_standard_component_thresholds(self):
        assert determine_recommendation_status(-500000, 0, 'CHASSIS-BASIC') == 'high-impact'
        assert determine_recommendation_status(-100000, 0, 'CHASSIS-BASIC') == 'opportunity'
        assert determine_recommendation_status(-50000, 0, 'CHASSIS-BASIC') == 'optimal'

    def test_high_value_component_thresholds(self):
        """High-value parts need larger savings for the same status"""
        assert determine_recommendation_status(-2000000, 0, 'ENGINE-B') == 'high-impact'
        assert determine_recommendation_status(-600000, 0, 'ENGINE-B') == 'opportunity'
        assert determine_recommendation_status(-100000, 0, 'ENGINE-B') == 'optimal'

    def test_risk_drives_status(self):
        assert determine_recommendation_status(0, 0.7, 'CHASSIS-BASIC') == 'high-impact'
        assert determine_recommendation_status(0, 0.3, 'CHASSIS-BASIC') == 'opportunity'

    def test_q2_downgrade(self):
        assert adjust_status_for_quarter('high-impact', 2) == 'opportunity'
        assert adjust_status_for_quarter('opportunity', 2) == 'optimal'
        assert adjust_status_for_quarter('optimal', 2) == 'optimal'
        assert adjust_status_for_quarter('high-impact', 1) == 'high-impact'


class TestUrgencyAndImpact:
    """Test urgency and impact levels"""

    def test_later_quarters_are_future(self):
        assert determine_recommendation_urgency(2, 'ENGINE-A') == 'future'

    def test_q1_engines_are_immediate(self):
        assert determine_recommendation_urgency(1, 'ENGINE-A') == 'immediate'
        assert determine_recommendation_urgency(1, 'ENGINE-B') == 'immediate'

    def test_q1_failure_prone_components_are_immediate(self):
        """Baseline failure rate above 3% makes a part urgent"""
        assert determine_recommendation_urgency(1, 'HYDRAULICS-SMALL') == 'immediate'
        assert determine_recommendation_urgency(1, 'HYDRAULICS-MEDIUM') == 'immediate'

    def test_q1_other_components_are_upcoming(self):
        assert determine_recommendation_urgency(1, 'CHASSIS-BASIC') == 'upcoming'
        assert determine_recommendation_urgency(1, 'CHASSIS-PREMIUM') == 'upcoming'

    def test_standard_impact_levels(self):
        assert determine_recommendation_impact(-500000, 0, 'CHASSIS-BASIC') == 'high'
        assert determine_recommendation_impact(-100000, 0, 'CHASSIS-BASIC') == 'moderate'
        assert determine_recommendation_impact(-50000, 0, 'CHASSIS-BASIC') == 'low'
        assert determine_recommendation_impact(0, 0.2, 'CHASSIS-BASIC') == 'moderate'

    def test_high_value_impact_levels(self):
        """Cost thresholds double and risk thresholds rise by half"""
        assert determine_recommendation_impact(-500000, 0, 'ENGINE-B') == 'moderate'
        assert determine_recommendation_impact(-1000000, 0, 'ENGINE-B') == 'high'
        assert determine_recommendation_impact(0, 0.5, 'ENGINE-B') == 'moderate'
        assert determine_recommendation_impact(0, 0.75, 'ENGINE-B') == 'high'


class TestPriority:
    """Test the priority matrix and opportunity scores"""

    def test_priority_matrix(self):
        assert determine_recommendation_priority('immediate', 'high') == 'critical'
        assert determine_recommendation_priority('immediate', 'moderate') == 'important'
        assert determine_recommendation_priority('upcoming', 'low') == 'optional'
        assert determine_recommendation_priority('future', 'high') == 'standard'
        assert determine_recommendation_priority('future', 'low') == 'optional'

    def test_unknown_combination_raises(self):
        with pytest.raises(ValueError):
            determine_recommendation_priority('someday', 'high')

    def test_opportunity_score_standard_component(self):
        """Half the normalization scale, no risk, immediate"""
        score = calculate_opportunity_score(-500000, 0, 'immediate', 'CHASSIS-BASIC')
        assert score == pytest.approx(35.0)

    def test_opportunity_score_engine_cap(self):
        """Cost and risk are capped at 1, engines get a 1.2 multiplier"""
        score = calculate_opportunity_score(-5000000, 3.0, 'immediate', 'ENGINE-B')
        assert score == pytest.approx(120.0)

    def test_opportunity_score_premium_future(self):
        score = calculate_opportunity_score(-1000000, 0, 'future', 'CHASSIS-PREMIUM')
        assert score == pytest.approx(23.1)

    def test_negative_risk_is_ignored(self):
        assert calculate_opportunity_score(0, -0.5, 'immediate', 'CHASSIS-BASIC') == 0.0


class TestPrioritizeCards:
    """Test tagging and sorting whole card frames"""

    @pytest.fixture
    def cards(self):
        return to_frame([
            make_card(component_id='CHASSIS-BASIC', quarter=2, cost_delta=-600000),
            make_card(component_id='ENGINE-B', quarter=1, cost_delta=-1500000),
            make_card(component_id='CHASSIS-BASIC', quarter=1, cost_delta=-20000),
        ])

    def test_columns_filled(self, cards):
        result = prioritize_cards(cards)
        by_component = result.set_index(['component_id', 'quarter'])

        assert by_component.loc[('ENGINE-B', 1), 'urgency'] == 'immediate'
        assert by_component.loc[('ENGINE-B', 1), 'impact_level'] == 'high'
        assert by_component.loc[('ENGINE-B', 1), 'priority'] == 'critical'
        assert by_component.loc[('CHASSIS-BASIC', 2), 'priority'] == 'standard'
        assert by_component.loc[('CHASSIS-BASIC', 1), 'priority'] == 'optional'

    def test_risk_deltas_by_card_id(self, cards):
        """Risk reductions are looked up by card id"""
        card_id = cards.loc[cards['component_id'].eq('CHASSIS-BASIC') & cards['quarter'].eq(1), 'card_id'].iloc[0]
        result = prioritize_cards(cards, risk_deltas={card_id: 0.6})
        row = result[result['card_id'] == card_id].iloc[0]
        assert row['impact_level'] == 'high'
        assert row['priority'] == 'important'

    def test_input_not_modified(self, cards):
        before = cards.drop(columns=['strategy']).copy()
        prioritize_cards(cards)
        pd.testing.assert_frame_equal(cards.drop(columns=['strategy']), before)

    def test_sort_order(self, cards):
        """Q1 first, then priority, then opportunity score"""
        result = sort_cards_by_priority(prioritize_cards(cards))
        assert result['quarter'].tolist() == [1, 1, 2]
        assert result['priority'].tolist() == ['critical', 'optional', 'standard']

    def test_empty_frame(self):
        empty = pd.DataFrame(columns=['component_id', 'quarter', 'cost_delta'])
        assert prioritize_cards(empty).empty
        assert sort_cards_by_priority(empty).empty


class TestFormatting:
    """Test cost formatting and rationale"""

    def test_format_cost_impact(self):
        assert format_cost_impact(-1234.0) == "-$1,234"
        assert format_cost_impact(5000) == "+$5,000"
        assert format_cost_impact(0) == "+$0"

    def test_rationale_for_savings(self):
        rationale = enhance_rationale_with_impact(['Supplier mix shifted.'], -20, -15000, 0.25, 'critical')
        assert rationale[0].startswith('This is a high-priority opportunity')
        assert rationale[1] == 'Supplier mix shifted.'
        assert 'Opportunity to reduce inventory by 20 units while maintaining service levels.' in rationale
        assert 'Potential savings of $15,000 with this allocation strategy.' in rationale
        assert rationale[-1].endswith('approximately 25%.')

    def test_rationale_for_investment(self):
        rationale = enhance_rationale_with_impact([], 10, 2500, 0, 'optional')
        assert rationale[0].startswith('This is an optional improvement')
        assert 'Opportunity to optimize inventory by adding 10 units.' in rationale
        assert 'Investment of $2,500 to improve reliability and service levels.' in rationale
        assert len(rationale) == 3


class TestAggregates:
    """Test total cost impact and risk reduction share"""

    def test_total_cost_impact(self):
        deltas = {'west': {'ENGINE-A': -1000, 'ENGINE-B': 250}, 'south': {'ENGINE-A': -500}}
        assert calculate_total_cost_impact(deltas) == -1250.0

    def test_risk_reduction_percentage(self):
        deltas = {'west': {'A': 0.1, 'B': -0.2}, 'south': {'C': 0}}
        assert calculate_risk_reduction_percentage(deltas) == pytest.approx(100 / 3)

    def test_risk_reduction_percentage_empty(self):
        assert calculate_risk_reduction_percentage({}) == 0.0
