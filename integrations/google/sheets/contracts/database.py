import logging
import pytz
from datetime import datetime
from typing import Optional

from reactivex import Observable
from reactivex.subject import Subject

import gspread

from integrations.google.api import GoogleApi

logger = logging.getLogger(__name__)

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'


# One Google spreadsheet holding several tables
# Reads are served from the tables' caches; every refresh pushes a fresh copy of the spreadsheet to them
class Database:
    def __init__(self, api: GoogleApi, spreadsheet_key: str, timezone: pytz.timezone):
        self._api = api
        self._spreadsheet_key = spreadsheet_key
        self.timezone = timezone

        self._spreadsheet = Subject()
        self._failed_sheets: set[str] = set()

    @property
    def spreadsheet(self) -> Observable:
        return self._spreadsheet

    def refresh(self) -> bool:
        logger.info(f"Refreshing spreadsheet {self._spreadsheet_key}")
        try:
            spreadsheet = self.load()
        except Exception as e:
            # The tables keep their cached data; an error would end their subscriptions for good
            logger.exception(e)
            return False

        # The tables read their worksheets while this runs and report back anything they could not load
        self._failed_sheets = set()
        self._spreadsheet.on_next(spreadsheet)

        if self._failed_sheets:
            logger.warning(f"Could not refresh: {', '.join(sorted(self._failed_sheets))}")
            return False

        return True

    def report_failure(self, sheet_name: str) -> None:
        self._failed_sheets.add(sheet_name)

    def load(self) -> gspread.Spreadsheet:
        return self._api.get_spreadsheet(self._spreadsheet_key)

    # Writes always go through a freshly opened worksheet, so that row numbers match what is in Google right now
    def worksheet(self, sheet_name: str) -> gspread.Worksheet:
        return self.load().worksheet(sheet_name)

    def from_datetime_string(self, datetime_string: str) -> Optional[datetime]:
        if not datetime_string or not datetime_string.strip():
            return None

        try:
            return self.timezone.localize(datetime.strptime(datetime_string.strip(), DATETIME_FORMAT))
        except ValueError:
            logger.warning(f"Could not parse the date '{datetime_string}'")
            return None

    def to_datetime_string(self, datetime_object: Optional[datetime]) -> str:
        if not datetime_object:
            return ''

        # Aware values are converted, naive ones are assumed to already be in the spreadsheet's timezone
        if datetime_object.tzinfo:
            return datetime_object.astimezone(self.timezone).strftime(DATETIME_FORMAT)

        return self.timezone.localize(datetime_object).strftime(DATETIME_FORMAT)
