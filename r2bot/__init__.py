__version__ = "1.0.0"

from dotenv import load_dotenv

load_dotenv()

from r2bot.logger import logger
from r2bot.bot import R2Bot
from r2bot.proxy import ProxyRotator
from r2bot.results import ResultsTable, OperationOutcome, StepResult
from r2bot.retry import execute_with_retry
from r2bot.scheduler import DailyScheduler

__all__ = [
    'R2Bot',
    'ProxyRotator',
    'ResultsTable',
    'OperationOutcome',
    'StepResult',
    'execute_with_retry',
    'DailyScheduler',
    'logger',
]
