from textledger.config import get_settings
from textledger.core.service import LedgerService
from textledger.db.repository import LedgerRepository
from textledger.parsing.parser import MessageParser

settings = get_settings()

repo = LedgerRepository(settings.db_path)
parser = MessageParser()
service = LedgerService(
    repo,
    parser,
    default_currency=settings.default_currency,
    default_other_party=settings.default_other_party,
)
