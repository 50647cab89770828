"""
Dashboard data clearing tool

Usage:
  python clear_data.py                  # wipe everything, including base entities
  python clear_data.py --preserve-base  # keep components, suppliers, models, locations
  python clear_data.py --forecast-only  # only demand forecast records
  python clear_data.py --historical-only

All deletes of one run happen in a single transaction: either every table is
cleared or nothing is.
"""
import argparse
import sqlite3
import sys

from business_rules import DASHBOARD_DB_PATH, DATABASE_RULES, get_clear_order


def _existing_tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


def _delete_tables(conn, tables):
    """
    Delete all rows from the given tables inside one transaction.

    Tables missing from the database are skipped with a warning.

    Returns:
        dict: {table: deleted_row_count}
    """
    existing = _existing_tables(conn)
    deleted = {}
    with conn:
        for table in tables:
            if table not in existing:
                print(f"WARNING: Table '{table}' not found. Skipping.")
                continue
            cursor = conn.execute(f'DELETE FROM "{table}"')
            deleted[table] = cursor.rowcount
            print(f"INFO: Deleted {cursor.rowcount} rows from {table}")
    return deleted


def clear_all_data(conn, preserve_base=False):
    """
    Clear dashboard data in foreign-key-safe order.

    Args:
        conn: Open sqlite3 connection
        preserve_base: Keep relationship and base entity tables

    Returns:
        dict: {table: deleted_row_count}
    """
    print("Clearing data from the database...")
    if preserve_base:
        print("Base entities (components, suppliers, models, locations) will be preserved")
    else:
        print("ALL data including base entities will be cleared")

    deleted = _delete_tables(conn, get_clear_order(preserve_base))

    if preserve_base:
        print("All data except base entities successfully cleared!")
    else:
        print("All data successfully cleared!")
    return deleted


def clear_forecast_data(conn):
    """Delete all demand forecast records."""
    print("Clearing all demand forecast records...")
    table = DATABASE_RULES["demand_forecast_table"]
    deleted = _delete_tables(conn, [table])
    print(f"Successfully deleted {deleted.get(table, 0)} forecast records")
    return deleted


def clear_historical_data(conn):
    """Delete the simulated historical records, children first."""
    print("Clearing historical data...")
    deleted = _delete_tables(conn, DATABASE_RULES["historical_tables"])
    print("All historical data cleared!")
    return deleted


def build_parser():
    parser = argparse.ArgumentParser(description='Clear dashboard data from the database')
    parser.add_argument('--preserve-base', '-p', action='store_true',
                        help='Keep components, suppliers, models and locations')
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument('--forecast-only', action='store_true', help='Only clear demand forecast records')
    scope.add_argument('--historical-only', action='store_true', help='Only clear historical records')
    parser.add_argument('--db', type=str, default=DASHBOARD_DB_PATH, help='Path to the SQLite database')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    conn = None
    try:
        conn = sqlite3.connect(args.db)
        conn.execute("PRAGMA foreign_keys = ON")
        if args.forecast_only:
            clear_forecast_data(conn)
        elif args.historical_only:
            clear_historical_data(conn)
        else:
            clear_all_data(conn, preserve_base=args.preserve_base)
    except sqlite3.Error as e:
        print(f"ERROR: Failed to clear data: {e}")
        return 1
    finally:
        if conn is not None:
            conn.close()

    print("Data clearing complete")
    return 0


if __name__ == '__main__':
    sys.exit(main())
