"""
CSV Serialization Service

Maps a sequence of records plus an ordered column configuration to CSV text.

Format:
- UTF-8 text, ``\\n`` between rows, no trailing row delimiter
- Configurable field delimiter (default ``,``)
- A cell is wrapped in double quotes, with every internal double quote
  doubled, when it contains a double quote, the delimiter, ``\\n`` or ``\\r``;
  otherwise the raw string is emitted
- ``None`` and missing keys become empty cells
- Field order within a row is exactly the order of the column configuration

Two delivery shapes share one row encoder:
- serialize(): pure, synchronous, whole text at once
- iter_csv_chunks() / serialize_chunked(): fixed-size batches with a progress
  callback, yielding to the event loop between batches so a large export
  does not starve other tasks on the same loop

The byte-order mark expected by spreadsheet tools is not part of the
serialized text; Download Sinks prepend it with ``with_bom()``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
)

from crm_reporting.models.enums import ExportKind


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_DELIMITER: str = ','
ROW_SEPARATOR: str = '\n'
DEFAULT_CHUNK_SIZE: int = 1000
UTF8_BOM: str = '\ufeff'
CSV_MIME_TYPE: str = 'text/csv'

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class CSVColumn:
    """
    One column of a CSV export.

    Attributes:
        key: Record key the cell value is read from.
        header: Header label written in the first row.
        transform: Optional mapping from the raw value to its display value.
            Exceptions raised by a transform propagate to the caller.
    """
    key: str
    header: str
    transform: Optional[Callable[[Any], Any]] = None


# =============================================================================
# CELL ENCODING
# =============================================================================

def _stringify(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat().replace('+00:00', 'Z')
    return str(value)


def escape_csv_field(value: Any, delimiter: str = DEFAULT_DELIMITER) -> str:
    """
    Stringify and escape a single cell.

    Example:
        >>> escape_csv_field('Restaurant "The Best" & Co.')
        '"Restaurant ""The Best"" & Co."'
        >>> escape_csv_field(None)
        ''
    """
    text = _stringify(value)
    if '"' in text or delimiter in text or '\n' in text or '\r' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def _cell_value(record: Mapping[str, Any], column: CSVColumn) -> Any:
    value = record.get(column.key)
    if column.transform is not None:
        return column.transform(value)
    return value


def encode_header(columns: Sequence[CSVColumn], delimiter: str = DEFAULT_DELIMITER) -> str:
    return delimiter.join(escape_csv_field(column.header, delimiter) for column in columns)


def encode_row(
    record: Mapping[str, Any],
    columns: Sequence[CSVColumn],
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    return delimiter.join(
        escape_csv_field(_cell_value(record, column), delimiter)
        for column in columns
    )


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize(
    records: Optional[Sequence[Mapping[str, Any]]],
    columns: Sequence[CSVColumn],
    include_headers: bool = True,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Serialize records to CSV text.

    Args:
        records: Records to serialize; None is treated as empty.
        columns: Ordered column configuration.
        include_headers: Whether to emit the header row first.
        delimiter: Field delimiter.

    Returns:
        CSV text with ``len(records)`` data rows (plus one header row when
        enabled) joined by ``\\n``.
    """
    rows: List[str] = []
    if include_headers:
        rows.append(encode_header(columns, delimiter))
    rows.extend(encode_row(record, columns, delimiter) for record in records or [])
    return ROW_SEPARATOR.join(rows)


async def iter_csv_chunks(
    records: Optional[Sequence[Mapping[str, Any]]],
    columns: Sequence[CSVColumn],
    include_headers: bool = True,
    delimiter: str = DEFAULT_DELIMITER,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
) -> AsyncIterator[str]:
    """
    Serialize records in fixed-size batches.

    Concatenating every yielded piece gives exactly ``serialize()``'s output:
    pieces after the first carry their leading row separator. After each
    batch ``on_progress(processed, total)`` is invoked and control is handed
    back to the event loop.

    Raises:
        ValueError: If chunk_size is not positive.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    records = records or []
    total = len(records)
    first = True

    if include_headers:
        yield encode_header(columns, delimiter)
        first = False

    for start in range(0, total, chunk_size):
        batch = records[start:start + chunk_size]
        text = ROW_SEPARATOR.join(encode_row(record, columns, delimiter) for record in batch)
        yield text if first else ROW_SEPARATOR + text
        first = False

        processed = min(start + chunk_size, total)
        if on_progress is not None:
            on_progress(processed, total)

        await asyncio.sleep(0)


async def serialize_chunked(
    records: Optional[Sequence[Mapping[str, Any]]],
    columns: Sequence[CSVColumn],
    include_headers: bool = True,
    delimiter: str = DEFAULT_DELIMITER,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """Chunked counterpart of ``serialize()`` producing identical text."""
    pieces: List[str] = []
    async for piece in iter_csv_chunks(
        records,
        columns,
        include_headers=include_headers,
        delimiter=delimiter,
        chunk_size=chunk_size,
        on_progress=on_progress,
    ):
        pieces.append(piece)

    logger.info(f"Serialized {len(records or [])} records in chunks of {chunk_size}")
    return ''.join(pieces)


# =============================================================================
# FILENAMES & DELIVERY HELPERS
# =============================================================================

def generate_csv_filename(
    base_name: str,
    today: Optional[date] = None,
    extension: str = 'csv',
) -> str:
    """
    Build a date-stamped filename, e.g. ``organizations-export-2026-10-18.csv``.

    ``today`` defaults to the current UTC date.
    """
    stamp = (today or datetime.now(timezone.utc).date()).isoformat()
    return f"{base_name}-{stamp}.{extension}"


def with_bom(text: str) -> str:
    """Prepend the UTF-8 byte-order mark for spreadsheet compatibility."""
    return UTF8_BOM + text


# =============================================================================
# TRANSFORMS
# =============================================================================

def format_locale_date(value: Any) -> str:
    """
    Render a timestamp as a short ``M/D/YYYY`` date string.

    Accepts datetimes, dates and ISO-8601 strings; empty values render as ''.
    """
    if value is None or value == '':
        return ''
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.date()
    return f"{value.month}/{value.day}/{value.year}"


def label_of(setting: Any) -> str:
    return getattr(setting, 'label', None) or ''


def name_of(entity: Any) -> str:
    return getattr(entity, 'name', None) or ''


def full_name_of(contact: Any) -> str:
    if contact is None:
        return ''
    return " ".join(part for part in (contact.firstName, contact.lastName) if part)


def yes_no(flag: Any) -> str:
    return 'Yes' if flag else 'No'


# =============================================================================
# COLUMN CONFIGURATIONS
# =============================================================================

ORGANIZATION_COLUMNS: List[CSVColumn] = [
    CSVColumn('id', 'ID'),
    CSVColumn('name', 'Organization Name'),
    CSVColumn('priority', 'Priority', label_of),
    CSVColumn('segment', 'Segment', label_of),
    CSVColumn('distributor', 'Distributor', label_of),
    CSVColumn('accountManager', 'Account Manager'),
    CSVColumn('address', 'Address'),
    CSVColumn('city', 'City'),
    CSVColumn('state', 'State'),
    CSVColumn('zipCode', 'Zip Code'),
    CSVColumn('phone', 'Phone'),
    CSVColumn('website', 'Website'),
    CSVColumn('notes', 'Notes'),
    CSVColumn('latitude', 'Latitude'),
    CSVColumn('longitude', 'Longitude'),
    CSVColumn('contactCount', 'Contact Count'),
    CSVColumn('lastContactDate', 'Last Contact Date', format_locale_date),
    CSVColumn('createdAt', 'Created At', format_locale_date),
    CSVColumn('updatedAt', 'Updated At', format_locale_date),
]

CONTACT_COLUMNS: List[CSVColumn] = [
    CSVColumn('id', 'ID'),
    CSVColumn('firstName', 'First Name'),
    CSVColumn('lastName', 'Last Name'),
    CSVColumn('email', 'Email'),
    CSVColumn('phone', 'Phone'),
    CSVColumn('organization', 'Organization', name_of),
    CSVColumn('role', 'Role', label_of),
    CSVColumn('isPrimary', 'Primary Contact', yes_no),
    CSVColumn('notes', 'Notes'),
    CSVColumn('lastInteractionDate', 'Last Interaction', format_locale_date),
    CSVColumn('interactionCount', 'Interaction Count'),
    CSVColumn('createdAt', 'Created At', format_locale_date),
]

INTERACTION_COLUMNS: List[CSVColumn] = [
    CSVColumn('id', 'ID'),
    CSVColumn('organization', 'Organization', name_of),
    CSVColumn('contact', 'Contact', full_name_of),
    CSVColumn('type', 'Type', label_of),
    CSVColumn('subject', 'Subject'),
    CSVColumn('description', 'Description'),
    CSVColumn('scheduledDate', 'Scheduled Date', format_locale_date),
    CSVColumn('completedDate', 'Completed Date', format_locale_date),
    CSVColumn('isCompleted', 'Completed', yes_no),
    CSVColumn('duration', 'Duration (minutes)'),
    CSVColumn('outcome', 'Outcome'),
    CSVColumn('followUpRequired', 'Follow-up Required', yes_no),
    CSVColumn('followUpDate', 'Follow-up Date', format_locale_date),
    CSVColumn('latitude', 'Latitude'),
    CSVColumn('longitude', 'Longitude'),
    CSVColumn('locationNotes', 'Location Notes'),
    CSVColumn('createdAt', 'Created At', format_locale_date),
]

CSV_COLUMN_CONFIGS: Dict[ExportKind, List[CSVColumn]] = {
    ExportKind.ORGANIZATIONS: ORGANIZATION_COLUMNS,
    ExportKind.CONTACTS: CONTACT_COLUMNS,
    ExportKind.INTERACTIONS: INTERACTION_COLUMNS,
}
