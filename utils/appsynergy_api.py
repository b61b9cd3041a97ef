import os
import logging
from io import StringIO
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import requests

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.appsynergy.com/api"
DEFAULT_ACTION = "EXEC_QUERY"
REQUEST_TIMEOUT = 60

ID_PLACEHOLDER = "{ID_FROM_TABLE}"

DEFAULT_DECLARATIONS_SQL = (
    "select vt.id, vt.visa, c.COMPANY_NAME, vt.trans_type, vt.state, vt.export_at "
    "from visa_transaction vt, COMPANY c "
    "where vt.user_id > 0 and vt.company_id = c.COMPANY_ID "
    "order by vt.export_at DESC;"
)


class QueryAPIError(Exception):
    """The query API could not be reached or returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def get_api_key() -> str:
    """Get the AppSynergy API key from the environment"""
    api_key = os.getenv('APPSYNERGY_API_KEY')
    if not api_key:
        raise ValueError("APPSYNERGY_API_KEY not found in environment variables")
    return api_key


def get_api_url() -> str:
    return os.getenv('APPSYNERGY_API_URL', DEFAULT_API_URL)


def build_visa_sql(declaration_id, template: Optional[str] = None) -> str:
    """
    Build the visa transaction query for a declaration

    Args:
        declaration_id: ID of the selected declaration
        template (str): SQL with an {ID_FROM_TABLE} placeholder (default: VISA_SQL_CMD env var)

    Returns:
        str: SQL command
    """
    if template is None:
        template = os.getenv('VISA_SQL_CMD')
    if not template:
        raise ValueError("VISA_SQL_CMD not found in environment variables")
    if ID_PLACEHOLDER not in template:
        raise ValueError(f"VISA_SQL_CMD must contain the {ID_PLACEHOLDER} placeholder")

    return template.replace(ID_PLACEHOLDER, str(declaration_id))


def forward_query(sql_cmd: str, response_format: str = "JSON", action: str = DEFAULT_ACTION,
                  api_key: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """
    Send a SQL command to the query API and hand back whatever it answered

    Args:
        sql_cmd (str): SQL command, sent as-is
        response_format (str): "JSON" or "CSV"
        action (str): API action (default: EXEC_QUERY)
        api_key (str): API key (default: APPSYNERGY_API_KEY env var)

    Returns:
        tuple: (HTTP status code, response body as dict)

    Raises:
        requests.exceptions.RequestException: If the API cannot be reached
    """
    if api_key is None:
        api_key = get_api_key()

    params = {
        'action': action,
        'apiKey': api_key
    }
    headers = {
        'Content-Type': 'application/json',
        'Accept': 'application/json'
    }
    body = {
        'sqlCmd': sql_cmd,
        'responseFormat': response_format or 'JSON'
    }

    logger.info(f"Sending {action} request to query API")
    logger.debug(f"SQL command: {sql_cmd}")
    response = requests.post(get_api_url(), params=params, headers=headers, json=body, timeout=REQUEST_TIMEOUT)
    logger.info(f"Query API response status: {response.status_code}")

    try:
        payload = response.json()
    except ValueError:
        # CSV results and plain-text errors are not JSON
        if response.status_code < 400:
            payload = {'status': 'OK', 'data': response.text}
        else:
            payload = {'status': 'ERROR', 'errorMessage': response.text}

    return response.status_code, payload


def execute_query(sql_cmd: str, response_format: str = "JSON") -> Any:
    """
    Run a query and return the data section of a successful response

    Raises:
        QueryAPIError: If the request fails or the API reports an error
    """
    try:
        status_code, payload = forward_query(sql_cmd, response_format=response_format)
    except requests.exceptions.RequestException as e:
        raise QueryAPIError(f"Failed to reach query API: {str(e)}")

    if status_code >= 400 or not isinstance(payload, dict) or payload.get('status') != 'OK':
        message = 'Unknown error'
        if isinstance(payload, dict):
            message = payload.get('errorMessage') or payload.get('message') or message
        raise QueryAPIError(f"API returned an error: {message}", status_code=status_code)

    return payload.get('data')


def rows_from_response(data: Dict[str, Any], lowercase_columns: bool = False) -> List[Dict[str, Any]]:
    """
    Convert the column-described JSON result into row dicts

    The API answers with
        {"columns": [{"columnName": ...}], "rows": [{"values": [{"value": ...}]}]}

    Args:
        data (dict): The "data" section of a successful response
        lowercase_columns (bool): Lower-case the column names

    Returns:
        list: One dict per row, keyed by column name
    """
    if not isinstance(data, dict) or 'columns' not in data or 'rows' not in data:
        raise QueryAPIError("Unexpected query result format: expected columns and rows")

    columns = data.get('columns') or []
    raw_rows = data.get('rows') or []
    if not isinstance(columns, list) or not isinstance(raw_rows, list):
        raise QueryAPIError("Unexpected query result format: columns and rows must be lists")

    column_names = []
    for position, column in enumerate(columns):
        if not isinstance(column, dict):
            raise QueryAPIError(f"Unexpected query result format: column {position} is not an object")
        name = str(column.get('columnName', ''))
        column_names.append(name.lower() if lowercase_columns else name)

    rows = []
    for position, row in enumerate(raw_rows):
        if not isinstance(row, dict):
            raise QueryAPIError(f"Unexpected query result format: row {position} is not an object")
        values = row.get('values') or []
        if not isinstance(values, list):
            raise QueryAPIError(f"Unexpected query result format: row {position} values must be a list")
        row_data = {}
        for index, name in enumerate(column_names):
            cell = values[index] if index < len(values) else None
            row_data[name] = cell.get('value') if isinstance(cell, dict) else None
        rows.append(row_data)

    logger.info(f"Parsed {len(rows)} rows with {len(column_names)} columns")
    return rows


def parse_csv_rows(csv_text: str) -> List[Dict[str, Any]]:
    """Parse a CSV query result into row dicts. Empty cells become None."""
    if not csv_text or not csv_text.strip():
        return []

    try:
        df = pd.read_csv(StringIO(csv_text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        return []

    df.columns = [str(column).strip() for column in df.columns]

    rows = []
    for record in df.to_dict(orient='records'):
        rows.append({
            column: (value.strip() or None) if isinstance(value, str) else None
            for column, value in record.items()
        })
    return rows


def query_rows(sql_cmd: str, response_format: str = "JSON", lowercase_columns: bool = False) -> List[Dict[str, Any]]:
    """
    Run a query and turn its result into row dicts

    CSV results are parsed with parse_csv_rows, JSON results with rows_from_response.

    Raises:
        QueryAPIError: If the query fails or the result cannot be read
    """
    data = execute_query(sql_cmd, response_format=response_format)

    if (response_format or 'JSON').upper() == 'CSV':
        if not isinstance(data, str):
            raise QueryAPIError("Unexpected query result format: expected CSV text")
        try:
            rows = parse_csv_rows(data)
        except pd.errors.ParserError as e:
            raise QueryAPIError(f"Could not parse CSV result: {str(e)}")
        if lowercase_columns:
            rows = [{column.lower(): value for column, value in row.items()} for row in rows]
        logger.info(f"Parsed {len(rows)} CSV rows")
        return rows

    return rows_from_response(data, lowercase_columns=lowercase_columns)


def fetch_declaration_rows(declaration_id, response_format: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Fetch the visa transaction rows for one declaration

    Args:
        declaration_id: ID of the selected declaration
        response_format (str): "JSON" or "CSV" (default: VISA_RESPONSE_FORMAT env var, else JSON)

    Raises:
        QueryAPIError: If the query fails
    """
    if response_format is None:
        response_format = os.getenv('VISA_RESPONSE_FORMAT', 'JSON')
    sql_cmd = build_visa_sql(declaration_id)
    logger.info(f"Fetching report data for declaration ID: {declaration_id}")
    return query_rows(sql_cmd, response_format=response_format)


def list_declarations(sql_cmd: Optional[str] = None) -> List[Dict[str, Any]]:
    """Fetch the declaration list with lower-cased column names"""
    if sql_cmd is None:
        sql_cmd = os.getenv('DECLARATIONS_SQL_CMD', DEFAULT_DECLARATIONS_SQL)
    return query_rows(sql_cmd, lowercase_columns=True)
