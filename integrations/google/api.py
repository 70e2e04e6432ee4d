import json
import logging

import gspread

logger = logging.getLogger(__name__)


class GoogleApi:
    def __init__(self, credentials: str):
        # The credentials are the contents of a service account key file
        self._client = gspread.service_account_from_dict(json.loads(credentials))

    def get_spreadsheet(self, spreadsheet_key: str) -> gspread.Spreadsheet:
        logger.debug(f"Opening spreadsheet {spreadsheet_key}")
        return self._client.open_by_key(spreadsheet_key)
