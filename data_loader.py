import pandas as pd
import time
from file_loader import safe_read_json
from business_rules import (
    CARD_FIELD_MAP,
    CARD_NUMERIC_COLUMNS,
    DEFAULT_CARD_LIST,
    DEFAULT_LOCATION_ID,
    DEFAULT_MODEL_ID,
    IMPACT_FIELDS,
    LOCATION_IDS,
    RECOMMENDATION_CARDS_PATH,
    RECOMMENDATION_DATA_PATH,
    SUPPLIER_FORECAST_PATH,
    SUPPLIER_QUALITY_ENHANCED_PATH,
    get_component_name,
    get_model_components,
)

# === Helper Functions ===

LOAD_TIMEOUT_SECONDS = 30

REQUIRED_CARD_COLUMNS = ["location_id", "component_id", "quarter", "year", "cost_delta"]


def safe_numeric_column(series: pd.Series) -> pd.Series:
    """
    Convert a column to numeric, treating blanks and bad values as 0.

    Args:
        series: Pandas Series to convert

    Returns:
        Numeric Series with NaN filled as 0
    """
    return pd.to_numeric(series, errors='coerce').fillna(0)


def check_columns(df, required_cols, name, logs):
    """Helper function to check for missing columns."""
    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        logs.append(f"ERROR: '{name}' is missing required columns: {', '.join(missing_cols)}")
        return False
    return True


def empty_cards_frame():
    """Empty card frame with the full column set."""
    columns = list(CARD_FIELD_MAP.values()) + ["card_id", "list"]
    return pd.DataFrame(columns=columns)


def empty_impact_block():
    """All-zero q1/q2/h1 impact block."""
    return {period: {field: 0 for field in IMPACT_FIELDS} for period in ("q1", "q2", "h1")}


def make_card_id(location_id, component_id, quarter, year):
    """Stable identifier for a (location, component, quarter, year) card."""
    return f"{location_id}-{component_id}-{quarter}-{year}"


def cards_to_frame(records, logs, name="recommendation cards"):
    """
    Shape a list of QuarterlyCard payload objects into the card frame.

    - Renames camelCase payload fields to snake_case columns
    - Coerces numeric fields (bad values become 0)
    - Adds card_id and tags every card with the default list
    - Drops duplicate card ids, keeping the first

    Args:
        records: List of card dicts as returned by the RPC layer
        logs: Log list to append messages to
        name: Source name used in log messages

    Returns:
        Card DataFrame (empty frame with all columns if nothing usable)
    """
    if not records:
        logs.append(f"WARNING: No {name} found in payload.")
        return empty_cards_frame()

    malformed = [record for record in records if not isinstance(record, dict)]
    if malformed:
        logs.append(f"WARNING: Dropped {len(malformed)} malformed entries from {name} (expected objects).")
        records = [record for record in records if isinstance(record, dict)]
        if not records:
            return empty_cards_frame()

    df = pd.DataFrame.from_records(records)
    df = df.rename(columns=CARD_FIELD_MAP)

    if not check_columns(df, REQUIRED_CARD_COLUMNS, name, logs):
        return empty_cards_frame()

    for col in CARD_FIELD_MAP.values():
        if col not in df.columns:
            df[col] = None

    for col in CARD_NUMERIC_COLUMNS:
        df[col] = safe_numeric_column(df[col])

    df['quarter'] = safe_numeric_column(df['quarter']).astype(int)
    df['year'] = safe_numeric_column(df['year']).astype(int)
    df['strategy'] = df['strategy'].apply(lambda s: s if isinstance(s, dict) else {})

    df['card_id'] = [
        make_card_id(loc, comp, q, y)
        for loc, comp, q, y in zip(df['location_id'], df['component_id'], df['quarter'], df['year'])
    ]

    duplicates = df[df.duplicated(subset=['card_id'], keep='first')]
    if not duplicates.empty:
        logs.append(f"WARNING: Found {len(duplicates)} duplicated cards in {name}. Keeping first instance.")
        df = df.drop_duplicates(subset=['card_id'], keep='first')

    unknown_locations = sorted(set(df['location_id'].astype(str)) - set(LOCATION_IDS))
    if unknown_locations:
        logs.append(f"WARNING: Unknown locations in {name}: {', '.join(unknown_locations)}")

    df['list'] = DEFAULT_CARD_LIST
    df = df[list(CARD_FIELD_MAP.values()) + ['card_id', 'list']].reset_index(drop=True)
    return df


# === Loaders ===

def load_recommendation_cards(cards_path=RECOMMENDATION_CARDS_PATH, file_key='cards'):
    """
    Load the full recommendation card set (recommendations.getAllCards payload).

    Args:
        cards_path: path to the cards JSON file (list of QuarterlyCard objects)
        file_key: session state key for uploaded file (default 'cards')

    Returns:
        tuple: (logs, cards_df)
    """
    logs = []
    start_time = time.time()
    logs.append("--- Recommendation Cards Loader ---")

    try:
        payload = safe_read_json(file_key, cards_path)
    except Exception as e:
        logs.append(f"ERROR: Failed to read recommendation cards: {e}")
        return logs, empty_cards_frame()

    if not isinstance(payload, list):
        logs.append("ERROR: Recommendation cards payload must be a list of cards.")
        return logs, empty_cards_frame()

    logs.append(f"INFO: Found {len(payload)} cards in payload.")
    df = cards_to_frame(payload, logs)

    quarter_counts = df['quarter'].value_counts().to_dict() if not df.empty else {}
    for quarter in sorted(quarter_counts):
        logs.append(f"INFO: Q{quarter}: {quarter_counts[quarter]} cards.")

    total_time = time.time() - start_time
    logs.append(f"INFO: Recommendation Cards Loader finished in {total_time:.2f} seconds.")
    if total_time > LOAD_TIMEOUT_SECONDS:
        logs.append(f"WARNING: This loader took longer than {LOAD_TIMEOUT_SECONDS} seconds!")
    return logs, df


def load_recommendation_data(data_path=RECOMMENDATION_DATA_PATH, file_key='recommendation_data'):
    """
    Load the recommendation visualization payload (data.getRecommendationData).

    The payload groups cards by component for one location/model focus example
    and carries precomputed impact blocks and the inventory simulation.

    Args:
        data_path: path to the recommendation data JSON file
        file_key: session state key for uploaded file

    Returns:
        tuple: (logs, cards_df, metadata) where metadata holds locationId,
        modelId, modelName, components, componentNames, totalImpact,
        overallImpact, heartlandImpact and inventorySimulation
    """
    logs = []
    start_time = time.time()
    logs.append("--- Recommendation Data Loader ---")

    metadata = {
        'locationId': DEFAULT_LOCATION_ID,
        'modelId': DEFAULT_MODEL_ID,
        'modelName': DEFAULT_MODEL_ID,
        'components': [],
        'componentNames': {},
        'totalImpact': empty_impact_block(),
        'overallImpact': empty_impact_block(),
        'heartlandImpact': empty_impact_block(),
        'inventorySimulation': {'currentStrategy': [], 'recommendedStrategy': []},
    }

    try:
        payload = safe_read_json(file_key, data_path)
    except Exception as e:
        logs.append(f"ERROR: Failed to read recommendation data: {e}")
        return logs, empty_cards_frame(), metadata

    if not isinstance(payload, dict):
        logs.append("ERROR: Recommendation data payload must be an object.")
        return logs, empty_cards_frame(), metadata

    for key in metadata:
        if payload.get(key) is not None:
            metadata[key] = payload[key]
        elif key.endswith('Impact'):
            logs.append(f"WARNING: '{key}' missing from payload. Using zero impact.")

    # Fall back to the catalog when the payload omits the model breakdown
    if not metadata['components']:
        metadata['components'] = get_model_components(metadata['modelId'])
    if not metadata['componentNames']:
        metadata['componentNames'] = {comp: get_component_name(comp) for comp in metadata['components']}

    simulation = metadata['inventorySimulation']
    if not isinstance(simulation, dict):
        logs.append("WARNING: 'inventorySimulation' is not an object. Using empty simulation.")
        simulation = {'currentStrategy': [], 'recommendedStrategy': []}
        metadata['inventorySimulation'] = simulation
    for strategy_key in ('currentStrategy', 'recommendedStrategy'):
        series = simulation.get(strategy_key, [])
        # The RPC payload wraps points in {id, data, color}
        if isinstance(series, dict):
            series = series.get('data', [])
        simulation[strategy_key] = series

    cards_by_component = payload.get('cardsByComponent') or {}
    if not isinstance(cards_by_component, dict):
        logs.append("WARNING: 'cardsByComponent' is not an object. No cards loaded.")
        cards_by_component = {}

    records = []
    for component_id, component_cards in cards_by_component.items():
        if not isinstance(component_cards, list):
            logs.append(f"WARNING: Cards for component '{component_id}' are not a list. Skipping.")
            continue
        records.extend(component_cards)
    logs.append(f"INFO: Flattened {len(records)} cards across {len(cards_by_component)} components.")

    df = cards_to_frame(records, logs, name="recommendation data cards")

    total_time = time.time() - start_time
    logs.append(f"INFO: Recommendation Data Loader finished in {total_time:.2f} seconds.")
    return logs, df, metadata


def load_supplier_quality_data(quality_path=SUPPLIER_QUALITY_ENHANCED_PATH, supplier_id='Bolt', file_key='supplier_quality'):
    """
    Load the static supplier quality visualization file for one supplier.

    Args:
        quality_path: path to supplier-quality-enhanced-visualization.json
        supplier_id: supplier to extract (the file is keyed by supplier)
        file_key: session state key for uploaded file

    Returns:
        tuple: (logs, data) where data is a dict with DataFrames
        'original_quality', 'analyzed', 'monthly', 'quarterly', 'periods'
        and the 'projection' and 'config' dicts. Empty dict on failure.
    """
    logs = []
    start_time = time.time()
    logs.append("--- Supplier Quality Loader ---")

    try:
        payload = safe_read_json(file_key, quality_path)
    except Exception as e:
        logs.append(f"ERROR: Failed to read supplier quality data: {e}")
        return logs, {}

    if not isinstance(payload, dict) or supplier_id not in payload:
        logs.append(f"ERROR: Supplier '{supplier_id}' not found in supplier quality data.")
        return logs, {}

    supplier = payload[supplier_id]

    original = supplier.get('originalQuality', {})
    original_df = pd.DataFrame({
        'date': pd.to_datetime(pd.Series(original.get('dates', []), dtype=object), errors='coerce'),
        'quality_index': pd.Series(original.get('qualityIndex', []), dtype=float),
        'efficiency_index': pd.Series(original.get('efficiencyIndex', []), dtype=float),
    })
    periods_df = pd.DataFrame(original.get('periods', []))

    analyzed = supplier.get('analyzedData', {})
    analyzed_df = pd.DataFrame({
        'time_point': pd.Series(analyzed.get('timePoints', []), dtype=object),
        'quality_value': pd.Series(analyzed.get('qualityValues', []), dtype=float),
        'lead_time_value': pd.Series(analyzed.get('leadTimeValues', []), dtype=float),
        'combined_value': pd.Series(analyzed.get('combinedValues', []), dtype=float),
    })

    if not (len(original.get('dates', [])) == len(original.get('qualityIndex', []))):
        logs.append("WARNING: Original quality dates and values have different lengths.")

    historical = supplier.get('historicalData', {})
    monthly_df = pd.DataFrame(historical.get('byMonth', []))
    quarterly_df = pd.DataFrame(historical.get('byQuarter', []))

    data = {
        'original_quality': original_df,
        'periods': periods_df,
        'analyzed': analyzed_df,
        'trend_direction': analyzed.get('trendDirection', {}),
        'trend_magnitude': analyzed.get('trendMagnitude', {}),
        'monthly': monthly_df,
        'quarterly': quarterly_df,
        'projection': supplier.get('projection', {}),
        'config': supplier.get('config', {}),
    }

    logs.append(f"INFO: Loaded {len(original_df)} quality points and {len(monthly_df)} monthly rows for {supplier_id}.")
    total_time = time.time() - start_time
    logs.append(f"INFO: Supplier Quality Loader finished in {total_time:.2f} seconds.")
    return logs, data


def _forecast_points_frame(points):
    df = pd.DataFrame(points or [], columns=['date', 'value', 'lower', 'upper'])
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    for col in ('value', 'lower', 'upper'):
        df[col] = pd.to_numeric(df[col], errors='coerce')
    return df


def load_supplier_forecast_data(forecast_path=SUPPLIER_FORECAST_PATH, file_key='supplier_forecast'):
    """
    Load the supplier performance forecast payload
    (data.getSupplierPerformanceForecastingData).

    Args:
        forecast_path: path to the forecast JSON file
        file_key: session state key for uploaded file

    Returns:
        tuple: (logs, data) with 'supplier_id', 'quality_forecast',
        'lead_time_forecast' and 'historical' DataFrames. Empty dict on failure.
    """
    logs = []
    logs.append("--- Supplier Forecast Loader ---")

    try:
        payload = safe_read_json(file_key, forecast_path)
    except Exception as e:
        logs.append(f"ERROR: Failed to read supplier forecast data: {e}")
        return logs, {}

    if not isinstance(payload, dict) or 'forecast' not in payload:
        logs.append("ERROR: Supplier forecast payload has no 'forecast' section.")
        return logs, {}

    forecast = payload['forecast'] or {}
    quality_df = _forecast_points_frame(forecast.get('qualityForecast'))
    lead_time_df = _forecast_points_frame(forecast.get('leadTimeForecast'))

    historical_df = pd.DataFrame(forecast.get('historicalData') or [])
    if not historical_df.empty and 'date' in historical_df.columns:
        historical_df['date'] = pd.to_datetime(historical_df['date'], errors='coerce')

    # Confidence bounds should bracket the point forecast
    for label, df in (('quality', quality_df), ('lead time', lead_time_df)):
        bad = df[(df['lower'] > df['value']) | (df['upper'] < df['value'])]
        if not bad.empty:
            logs.append(f"WARNING: {len(bad)} {label} forecast points fall outside their confidence bounds.")

    logs.append(f"INFO: Loaded {len(quality_df)} quality and {len(lead_time_df)} lead time forecast points.")
    data = {
        'supplier_id': payload.get('supplierId'),
        'quality_forecast': quality_df,
        'lead_time_forecast': lead_time_df,
        'historical': historical_df,
    }
    return logs, data
