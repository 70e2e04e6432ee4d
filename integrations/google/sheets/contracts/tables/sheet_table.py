import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar, Generic, Optional, TYPE_CHECKING

import gspread
from gspread.utils import ValueInputOption
from reactivex import operators as op
from readerwriterlock.rwlock import RWLockWrite

from integrations.memory.indexes import Index

if TYPE_CHECKING:
    from integrations.google.sheets.contracts.database import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")
Row = dict[str, str]


# Base class for worksheets laid out as a header row followed by one model per row
# The models are cached in indexes which are rebuilt every time the database is refreshed
# Writes go to Google first and only then to the indexes, so a failed write leaves the cache untouched
class SheetTable(ABC, Generic[T]):
    def __init__(self, database: 'Database', sheet_name: str):
        self._database = database
        self._sheet_name = sheet_name

        # The data can be read and refreshed from different threads
        self._lock = RWLockWrite()

        self._attach()

    def _attach(self) -> None:
        # A failed read only skips that refresh; letting the error through would end the subscription
        self._database.spreadsheet.pipe(  # Start with the spreadsheet
            op.map(self._guarded(lambda spreadsheet: self._load_values(self._load_worksheet(spreadsheet)))),  # Load the actual data
            op.filter(lambda raw: raw is not None),
            op.distinct_until_changed(),  # Only reparse when the sheet data has changed
            op.map(self._guarded(self._parse)),  # Parse the data
            op.filter(lambda models: models is not None),
        ).subscribe(
            on_next=self._reload,  # Replace the cached data
            on_error=logger.exception,  # Log errors
        )

    def _guarded(self, step: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def run(value: Any) -> Any:
            try:
                return step(value)
            except Exception as e:
                logger.exception(e)
                self._database.report_failure(self._sheet_name)
                return None

        return run

    def _reload(self, models: list[T]) -> None:
        logger.info(f"Loaded {len(models)} rows from {self._sheet_name}")
        with self._lock.gen_wlock():
            for index in self._get_indexes():
                index.reset(models)

    def _load_worksheet(self, spreadsheet: gspread.Spreadsheet) -> gspread.Worksheet:
        logger.info(f"Loading worksheet {self._sheet_name}")
        return spreadsheet.worksheet(self._sheet_name)

    def _load_values(self, worksheet: gspread.Worksheet) -> list[list[str]]:
        logger.debug(f"Loading worksheet values")
        return worksheet.get_values()

    def _open(self) -> tuple[gspread.Worksheet, list[list[str]]]:
        worksheet = self._database.worksheet(self._sheet_name)
        raw = self._load_values(worksheet)
        if not raw:
            raise ValueError(f"The sheet {self._sheet_name} does not contain a header row")

        return worksheet, raw

    def _parse(self, raw: list[list[str]]) -> list[T]:
        if not raw:
            raise ValueError(f"The sheet {self._sheet_name} does not contain the necessary data")

        keys = [SheetTable._header_to_key(h) for h in raw[0]]
        deserialized = [self._deserialize(dict(zip(keys, row))) for row in raw[1:]]
        return [model for model in deserialized if model]

    def _append_rows(self, rows: list[Row]) -> None:
        if not rows:
            return

        worksheet, raw = self._open()
        columns = SheetTable._columns(raw[0])

        to_append = [SheetTable._fill_gaps({columns[k]: v for k, v in row.items() if k in columns}) for row in rows]
        worksheet.append_rows(to_append, value_input_option=ValueInputOption.raw)

    def _update_rows(self, rows: dict[str, Row]) -> None:
        if not rows:
            return

        worksheet, raw = self._open()
        columns = SheetTable._columns(raw[0])
        row_numbers = self._row_numbers(raw, columns)

        cells = []
        for key, row in rows.items():
            row_number = row_numbers.get(key)
            if row_number is None:
                continue

            for k, v in row.items():
                if k in columns:
                    cells.append(gspread.Cell(row_number, columns[k] + 1, v))  # Columns start at 1

        # One request for everything, so either all the changes land or none of them do
        if cells:
            worksheet.update_cells(cells, value_input_option=ValueInputOption.raw)

    def _delete_rows(self, keys: list[str]) -> None:
        if not keys:
            return

        worksheet, raw = self._open()
        row_numbers = self._row_numbers(raw, SheetTable._columns(raw[0]))

        # Delete from the bottom up so the remaining row numbers stay valid
        for row_number in sorted((row_numbers[key] for key in keys if key in row_numbers), reverse=True):
            worksheet.delete_rows(row_number)

    def _row_numbers(self, raw: list[list[str]], columns: dict[str, int]) -> dict[str, int]:
        key_name = self._get_key_name()
        if key_name not in columns:
            raise ValueError(f"The sheet {self._sheet_name} has no {key_name} column")

        key_column = columns[key_name]
        # Rows start at 1 and the first one is the header
        return {row[key_column]: i + 2 for i, row in enumerate(raw[1:]) if key_column < len(row)}

    @staticmethod
    def _columns(header: list[str]) -> dict[str, int]:
        # Map the header keys to their column numbers - instead of A, B, C we use 0, 1, 2
        return {SheetTable._header_to_key(h): i for i, h in enumerate(header)}

    @staticmethod
    def _fill_gaps(data_by_column: dict[int, str], filler: str = '') -> list[str]:
        if not data_by_column:
            return []

        return [data_by_column.get(i, filler) for i in range(max(data_by_column) + 1)]

    @staticmethod
    def _header_to_key(text: str) -> str:
        text = re.sub(r"\([^)]*\)", '', text)  # Remove anything in parentheses
        text = re.sub(r"\s+", ' ', text)  # Squash multiple whitespaces together
        text = text.strip()  # Remove leading / trailing whitespace
        text = text.lower()  # Everything should be lowercase
        text = re.sub(r"[^a-z0-9_]", '_', text)  # Remove any characters except the ones used for variables

        return text

    @staticmethod
    def _parse_float(float_string: str) -> Optional[float]:
        try:
            return float(float_string.strip())
        except ValueError:
            return None

    @staticmethod
    def _parse_int(int_string: str) -> Optional[int]:
        try:
            return int(int_string.strip())
        except ValueError:
            return None

    @abstractmethod
    def _get_key_name(self) -> str:
        pass

    @abstractmethod
    def _get_indexes(self) -> list[Index]:
        pass

    @abstractmethod
    def _serialize(self, model: T) -> Row:
        pass

    @abstractmethod
    def _deserialize(self, row: Row) -> Optional[T]:
        pass
