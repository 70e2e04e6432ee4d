import pytz

from integrations.google.api import GoogleApi
from integrations.google.sheets.contracts.database import Database
from integrations.google.sheets.tables.matches import MatchesTable
from integrations.google.sheets.tables.players import PlayersTable


class PingPongDatabase(Database):
    def __init__(self, api: GoogleApi, spreadsheet_key: str, timezone: pytz.timezone):
        super().__init__(api, spreadsheet_key, timezone)

        self._players = PlayersTable(self, 'Players')
        self._matches = MatchesTable(self, 'Matches')

        self.refresh()

    @property
    def players(self) -> PlayersTable:
        return self._players

    @property
    def matches(self) -> MatchesTable:
        return self._matches
