"""
Helper module to read JSON payloads from either disk or Streamlit uploaded buffers.
"""
import json
import os
import streamlit as st


def get_file_source(file_key: str, file_path: str):
    """
    Returns a file-like object or path for reading a JSON payload.

    Priority:
    1. If uploaded file exists in session_state.uploaded_files, use that buffer
    2. Otherwise, use the file_path (disk or env var)

    Args:
        file_key: key in st.session_state.uploaded_files (e.g., 'cards', 'supplier_quality')
        file_path: fallback file path

    Returns:
        tuple: (source, is_uploaded) where source is file-like or path, is_uploaded is bool
    """
    # st.session_state is not usable outside a running Streamlit app
    try:
        uploaded_files = st.session_state.get('uploaded_files', {})
    except (AttributeError, RuntimeError):
        uploaded_files = {}

    if file_key and file_key in uploaded_files:
        return uploaded_files[file_key], True
    elif file_path and os.path.isfile(os.path.abspath(file_path)):
        return file_path, False
    else:
        return None, False


def safe_read_json(file_key: str, file_path: str):
    """
    Read a JSON payload from either uploaded buffer or disk.

    Args:
        file_key: key in st.session_state.uploaded_files
        file_path: fallback file path

    Returns:
        Parsed JSON (list or dict)

    Raises:
        FileNotFoundError: neither an uploaded buffer nor the file exists
        json.JSONDecodeError: the payload is not valid JSON
    """
    source, is_uploaded = get_file_source(file_key, file_path)

    if source is None:
        raise FileNotFoundError(f"File not found: {file_path} (and no uploaded file)")

    if is_uploaded:
        if hasattr(source, 'seek'):
            source.seek(0)
        raw = source.read()
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        return json.loads(raw)

    with open(source, 'r', encoding='utf-8') as f:
        return json.load(f)
