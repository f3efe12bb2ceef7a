"""Load deposit records from JSON text or a JSON file."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from beacondeposit.deposits.errors import EmptyInputError, MalformedInputError
from beacondeposit.deposits.models import DepositRecord
from beacondeposit.helpers.logging import get_logger


logger = get_logger(__name__)


def _parse_json(text: str) -> list[Any]:
    stripped = text.lstrip()
    if stripped.startswith("{"):
        stripped = f"[{stripped}]"
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        msg = f"invalid deposit data JSON: {e}"
        raise MalformedInputError(msg) from e
    if not isinstance(data, list):
        msg = "deposit data must be a JSON object or array"
        raise MalformedInputError(msg)
    return data


def load_deposit_records(data: str) -> list[DepositRecord]:
    """Load deposit records.

    `data` may be a single JSON object, a JSON array of objects, or the path
    to a file holding either. The choice is made on the first non-whitespace
    character.

    Args:
        data: JSON text or a file path

    Returns:
        Records in input order

    Raises:
        MalformedInputError: If the JSON is invalid, a member is not an object,
            a field cannot be decoded or the file cannot be read
        EmptyInputError: If there are no records

    Example:
        ```python
        records = load_deposit_records("/home/me/depositdata.json")
        records = load_deposit_records('{"pubkey": "0xa1...", "value": 32000000000}')
        ```
    """
    text = data.lstrip()
    if not text.startswith(("{", "[")):
        path = Path(data.strip())
        try:
            text = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            msg = f"failed to read deposit data file {str(path)!r}: {e}"
            raise MalformedInputError(msg) from e
        logger.debug("Read deposit data from %s", path)

    entries = _parse_json(text)

    records: list[DepositRecord] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            msg = "deposit entry is not a JSON object"
            raise MalformedInputError(msg, index=index)
        try:
            records.append(DepositRecord.model_validate(entry))
        except ValidationError as e:
            msg = f"invalid deposit entry: {e}"
            raise MalformedInputError(msg, index=index) from e

    if not records:
        msg = "no deposit information supplied"
        raise EmptyInputError(msg)

    logger.debug("Loaded %d deposit(s)", len(records))
    return records


__all__ = ["load_deposit_records"]
