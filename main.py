import logging
import os
import pytz

from dotenv import load_dotenv

from data.repositories.match import MatchRepository
from data.repositories.player import PlayerRepository
from helpers.business_logic.ping_pong_calculator import PingPongCalculator
from integrations.google.api import GoogleApi
from integrations.google.sheets.databases.ping_pong_database import PingPongDatabase
from integrations.memory.ping_pong_store import MemoryPlayersTable, MemoryMatchesTable

logger = logging.getLogger(__name__)

STORAGE_MEMORY = 'memory'
STORAGE_SHEETS = 'sheets'


class MainConfig:
    def __init__(self):
        self.log_level = logging.getLevelName(os.getenv('log_level', 'INFO'))
        self.timezone = pytz.timezone(os.getenv('timezone', 'Europe/Bucharest'))
        self.storage = os.getenv('storage', STORAGE_SHEETS).strip().lower()
        self.google_api_credentials = os.getenv('google_api_credentials')
        self.ping_pong_google_spreadsheet_key = os.getenv('ping_pong_google_spreadsheet_key')

        if self.storage not in (STORAGE_MEMORY, STORAGE_SHEETS):
            raise ValueError(f"Unknown storage '{self.storage}', expected '{STORAGE_MEMORY}' or '{STORAGE_SHEETS}'")


def create_storage(config: MainConfig) -> tuple[PlayerRepository, MatchRepository]:
    if config.storage == STORAGE_MEMORY:
        return MemoryPlayersTable(), MemoryMatchesTable()

    ping_pong = PingPongDatabase(
        api=GoogleApi(config.google_api_credentials),
        spreadsheet_key=config.ping_pong_google_spreadsheet_key,
        timezone=config.timezone,
    )
    return ping_pong.players, ping_pong.matches


def main() -> None:
    load_dotenv()

    config = MainConfig()
    logging.basicConfig(level=config.log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    players, matches = create_storage(config)

    ppc = PingPongCalculator(
        players=players,
        matches=matches,
        timezone=config.timezone,
    )

    # Rebuild every rating from the match history, then show the ladder
    ppc.recalculate()

    for rank, player in ppc.get_standings():
        logger.info(f"{rank}. {player.name} - {player.rating:.2f} ({player.wins}W / {player.losses}L)")


if __name__ == '__main__':
    main()
