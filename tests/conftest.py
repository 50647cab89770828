"""
Pytest configuration and shared fixtures for all tests
Centralized mock card payloads and utilities
"""

import pytest
import json
import os
import sys
from types import SimpleNamespace

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import file_loader
from data_loader import cards_to_frame

LOCATIONS = ['west', 'south', 'heartland']
COMPONENT_IDS = ['ENGINE-A', 'ENGINE-B', 'CHASSIS-BASIC', 'CHASSIS-PREMIUM', 'HYDRAULICS-SMALL', 'HYDRAULICS-MEDIUM']


# ===== CARD BUILDERS =====

def make_card(location_id='heartland', component_id='ENGINE-B', quarter=1, year=2025,
              current_units=100, recommended_units=80, current_cost=10000.0,
              recommended_cost=8000.0, cost_delta=None, unit_delta=None,
              priority='standard', allocations=None):
    """
    Build one card payload in the shape the recommendations RPC returns.

    cost_delta and unit_delta default to recommended minus current.
    """
    if cost_delta is None:
        cost_delta = recommended_cost - current_cost
    if unit_delta is None:
        unit_delta = recommended_units - current_units

    card = {
        'locationId': location_id,
        'componentId': component_id,
        'quarter': quarter,
        'year': year,
        'currentUnits': current_units,
        'currentCost': current_cost,
        'recommendedUnits': recommended_units,
        'recommendedCost': recommended_cost,
        'unitDelta': unit_delta,
        'costDelta': cost_delta,
        'urgency': 'upcoming',
        'impactLevel': 'moderate',
        'priority': priority,
        'opportunityScore': 10.0,
        'strategy': {},
    }
    if allocations is not None:
        card['strategy'] = {'topLevelSuggestionPieces': {'supplierAllocations': allocations}}
    return card


def make_full_card_set(q1_step=1000.0, q2_step=500.0):
    """
    18 cards per quarter (3 locations x 6 components).

    The n-th card of a quarter (1-based) saves n * step, so the 6th largest
    Q1 saving is 13 * q1_step and the 12th largest is 7 * q1_step.
    """
    cards = []
    for quarter, step in ((1, q1_step), (2, q2_step)):
        n = 1
        for location_id in LOCATIONS:
            for component_id in COMPONENT_IDS:
                cards.append(make_card(
                    location_id=location_id,
                    component_id=component_id,
                    quarter=quarter,
                    cost_delta=-n * step,
                ))
                n += 1
    return cards


def to_frame(records):
    """Shape card payloads into the card frame, discarding loader logs."""
    return cards_to_frame(records, [])


# ===== SESSION STATE FIXTURE =====

@pytest.fixture(autouse=True)
def no_uploaded_files(monkeypatch):
    """
    Auto-used fixture that replaces Streamlit's session state with an empty
    dict so loaders always read from disk unless a test uploads a buffer.
    """
    monkeypatch.setattr(file_loader, 'st', SimpleNamespace(session_state={}))


# ===== SHARED FIXTURES =====

@pytest.fixture
def full_card_payload():
    """36 card payloads: 18 in Q1 and 18 in Q2"""
    return make_full_card_set()


@pytest.fixture
def full_cards_df(full_card_payload):
    """Card frame for the full card set"""
    return to_frame(full_card_payload)


@pytest.fixture
def partial_cards_df():
    """Card frame with only 5 cards per quarter (thresholds not yet derivable)"""
    records = [
        make_card(location_id='west', component_id=comp, quarter=q, cost_delta=-(i + 1) * 100.0)
        for q in (1, 2)
        for i, comp in enumerate(COMPONENT_IDS[:5])
    ]
    return to_frame(records)


@pytest.fixture
def write_json(tmp_path):
    """Write a payload to a JSON file under tmp_path and return its path"""
    def _write(name, payload):
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding='utf-8')
        return str(path)
    return _write


# ===== UTILITY FUNCTIONS FOR TESTS =====

def assert_log_contains(logs, expected_message):
    """
    Helper to assert that a log message contains expected text

    Args:
        logs: List of log messages
        expected_message: Text expected to be in one of the logs
    """
    log_text = " ".join(logs)
    assert expected_message in log_text, f"Expected '{expected_message}' not found in logs: {log_text}"


def assert_columns_exist(df, columns):
    """
    Helper to assert that DataFrame contains required columns

    Args:
        df: Pandas DataFrame
        columns: List of column names that should exist
    """
    missing = set(columns) - set(df.columns)
    assert not missing, f"Missing required columns: {missing}"


def assert_no_nulls(df, columns):
    """
    Helper to assert that specified columns have no null values

    Args:
        df: Pandas DataFrame
        columns: List of column names to check
    """
    for col in columns:
        null_count = df[col].isna().sum()
        assert null_count == 0, f"Column '{col}' has {null_count} null values"
