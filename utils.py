import pandas as pd
import streamlit as st
import io # Required for Excel export

from recommendation_cards import CardBoard
from shopping_list import build_supplier_order_items, group_orders_by_supplier

CARD_BOARD_CACHE_KEY = 'card_board'

# Columns that hold nested payloads and do not belong in a spreadsheet
NON_EXPORT_COLUMNS = ['strategy']


# --- Session View State ---

def _session_state():
    try:
        state = st.session_state
        # Touch the state so a missing runtime surfaces here
        state.get(CARD_BOARD_CACHE_KEY)
        return state
    except (AttributeError, RuntimeError):
        return None


def get_cached_card_board(data_loader_func, *loader_args) -> CardBoard:
    """
    Build the card board once per session and keep it in session_state.

    The board (list tags and frozen thresholds) lives for the browser session
    and is discarded on reload, so list moves survive reruns but never reach
    the database.

    Args:
        data_loader_func: Loader returning (logs, cards_df) or a DataFrame
        *loader_args: Arguments to pass to the loader function

    Returns:
        CardBoard (cached when a Streamlit session is available)

    Example:
        board = get_cached_card_board(load_recommendation_cards, RECOMMENDATION_CARDS_PATH)
    """
    state = _session_state()

    if state is not None and CARD_BOARD_CACHE_KEY in state:
        return state[CARD_BOARD_CACHE_KEY]

    result = data_loader_func(*loader_args)
    # Loaders return (logs, data[, metadata])
    if isinstance(result, tuple):
        logs = result[0] if result else []
        cards_df = result[1] if len(result) > 1 else pd.DataFrame()
        for line in logs:
            if line.startswith("ERROR"):
                print(f"[CARDS DEBUG] {line}")
    else:
        cards_df = result

    board = CardBoard(cards_df)
    if state is not None:
        state[CARD_BOARD_CACHE_KEY] = board
    return board


def clear_cached_card_board():
    """Drop the cached board so the next access reloads the cards."""
    state = _session_state()
    if state is not None and CARD_BOARD_CACHE_KEY in state:
        del state[CARD_BOARD_CACHE_KEY]


# --- Data Export Function ---

def get_filtered_data_as_excel(dfs_to_export_dict):
    """
    Processes a dictionary of dataframes
    and returns an Excel file as a bytes object for download.
    The dictionary format is { "sheet_name": (dataframe, include_index_bool) }
    """
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        for sheet_name, (df, include_index) in dfs_to_export_dict.items():

            if not isinstance(df, pd.DataFrame):
                print(f"Skipping {sheet_name}: Not a DataFrame.")
                continue
            if df.empty:
                print(f"Skipping {sheet_name}: DataFrame is empty.")
                continue

            df_to_export = df.drop(columns=[c for c in NON_EXPORT_COLUMNS if c in df.columns])

            df_to_export.to_excel(writer, sheet_name=sheet_name, index=include_index)

            # Auto-adjust column widths
            worksheet = writer.sheets[sheet_name]
            offset = 1 if include_index else 0
            for idx, col in enumerate(df_to_export.columns):
                series = df_to_export[col]
                max_len = max(
                    series.astype(str).map(len).max(),
                    len(str(series.name))
                ) + 2
                worksheet.set_column(idx + offset, idx + offset, max_len)

        # xlsxwriter refuses to save a workbook without sheets
        if not writer.sheets:
            pd.DataFrame({'Info': ['No data to export']}).to_excel(writer, sheet_name='Info', index=False)

    return output.getvalue()


def get_shopping_list_as_excel(board: CardBoard):
    """
    Export the procurement list: accepted cards, supplier order lines and the
    per-supplier order summary.
    """
    items_df = build_supplier_order_items(board.shopping_list)
    groups_df = group_orders_by_supplier(items_df)

    return get_filtered_data_as_excel({
        "Accepted Cards": (board.shopping_list, False),
        "Order Lines": (items_df, False),
        "Supplier Orders": (groups_df, False),
    })
